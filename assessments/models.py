# assessments/models.py
from datetime import timedelta

from django.db import models
from django.conf import settings
from django.db.models import Q
from django.utils import timezone

from exams.models import Exam


class ExamSession(models.Model):
    """Tracks a student's specific attempt at an exam."""

    class Status(models.TextChoices):
        STARTED = "started", "Started"
        COMPLETED = "completed", "Completed"
        ABANDONED = "abandoned", "Abandoned"  # reserved, no transition leads here yet

    # PROTECT: exams are only ever soft-deleted
    exam = models.ForeignKey(Exam, on_delete=models.PROTECT, related_name='sessions')
    student = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='exam_sessions')
    booklet_type = models.CharField(max_length=1)

    # Canonical question number (as string) -> "A".."E" or ""
    student_answers = models.JSONField(default=dict, blank=True)
    score = models.PositiveIntegerField(null=True, blank=True)
    percentage = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.STARTED)
    started_at = models.DateTimeField(default=timezone.now)
    completed_at = models.DateTimeField(null=True, blank=True)  # When they submitted

    class Meta:
        ordering = ['-started_at']
        constraints = [
            # At most one open attempt per student and exam
            models.UniqueConstraint(
                fields=['exam', 'student'],
                condition=Q(status='started'),
                name='one_started_session_per_student_exam',
            ),
        ]

    def __str__(self):
        return f"{self.student} - {self.exam.name} ({self.status})"

    @property
    def is_completed(self):
        return self.status == self.Status.COMPLETED

    @property
    def deadline(self):
        return self.started_at + timedelta(minutes=self.exam.duration_minutes)
