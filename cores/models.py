from decimal import Decimal

from django.db import models
from django.core.cache import cache
from django.conf import settings

class PlatformSetting(models.Model):
    # --- General & Branding ---
    site_name = models.CharField(max_length=100, default="Deneme Sınavı Mağazası")
    support_email = models.EmailField(default="destek@example.com")

    # --- Scoring & Timing ---
    wrong_answer_penalty = models.DecimalField(
        max_digits=4, decimal_places=3, default=Decimal("0.25"),
        help_text="Points deducted from the net score per incorrect answer"
    )
    submit_grace_seconds = models.PositiveIntegerField(
        default=60,
        help_text="Seconds after the exam deadline before a submission is flagged as overdue"
    )

    def save(self, *args, **kwargs):
        self.pk = 1  # Singleton pattern
        super().save(*args, **kwargs)
        cache.set('platform_settings', self)

    def delete(self, *args, **kwargs):
        pass

    @classmethod
    def load(cls):
        obj = cache.get('platform_settings')
        if obj is None:
            obj, created = cls.objects.get_or_create(pk=1)
            cache.set('platform_settings', obj)
        return obj

    def __str__(self):
        return "Platform Settings"


class AuditLog(models.Model):
    ACTION_CHOICES = [
        ('CREATE', 'Create'),
        ('UPDATE', 'Update'),
        ('DELETE', 'Delete'),
        ('IMPORT', 'Answer Key Imported'),
        ('GRANT', 'Exam Access Granted'),
        ('GRANT_FAILED', 'Exam Access Grant Failed'),
        ('SETTINGS', 'Settings Changed'),
    ]

    actor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=20, choices=ACTION_CHOICES)
    target_model = models.CharField(max_length=50, help_text="e.g., Exam, Order")
    target_object_id = models.CharField(max_length=100, blank=True, null=True)
    details = models.TextField(blank=True, help_text="Description of changes")
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-timestamp']

    def __str__(self):
        return f"{self.actor} - {self.action} - {self.timestamp}"

    @classmethod
    def record(cls, actor, action, instance, details=''):
        return cls.objects.create(
            actor=actor if getattr(actor, 'is_authenticated', False) else None,
            action=action,
            target_model=type(instance).__name__,
            target_object_id=str(instance.pk),
            details=details,
        )
