# exams/models.py
from django.conf import settings
from django.db import models

from .answer_key import AnswerKey


class Exam(models.Model):
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    subject = models.CharField(max_length=100)  # "Matematik", "Karma", ...

    duration_minutes = models.PositiveIntegerField()
    total_questions = models.PositiveIntegerField(default=0)

    # Canonical question number (as string) -> value
    answer_key = models.JSONField(default=dict)
    question_subjects = models.JSONField(default=dict, blank=True)
    question_tests = models.JSONField(default=dict, blank=True)
    objective_codes = models.JSONField(default=dict, blank=True)
    objective_names = models.JSONField(default=dict, blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_exams'
    )
    # Soft delete flag: sessions keep pointing at deactivated exams
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.name

    @property
    def key(self):
        return AnswerKey.from_exam(self)

    @property
    def booklet_codes(self):
        return [booklet.code for booklet in self.booklets.all()]

    def deactivate(self):
        self.is_active = False
        self.save(update_fields=['is_active', 'updated_at'])


class BookletQuerySet(models.QuerySet):
    def upsert(self, exam, code, question_order):
        """Insert or replace the order for (exam, code) in one statement."""
        self.bulk_create(
            [Booklet(exam=exam, code=code, question_order=list(question_order))],
            update_conflicts=True,
            unique_fields=['exam', 'code'],
            update_fields=['question_order'],
        )
        return self.get(exam=exam, code=code)


class Booklet(models.Model):
    """One presentation order of an exam's canonical questions."""
    exam = models.ForeignKey(Exam, related_name='booklets', on_delete=models.CASCADE)
    code = models.CharField(max_length=1)  # "A".."E"
    question_order = models.JSONField(default=list)  # e.g. [1, 15, 3, 20, ...]
    created_at = models.DateTimeField(auto_now_add=True)

    objects = BookletQuerySet.as_manager()

    class Meta:
        ordering = ['code']
        constraints = [
            models.UniqueConstraint(fields=['exam', 'code'], name='unique_booklet_code_per_exam'),
        ]

    def __str__(self):
        return f"{self.exam.name} - Booklet {self.code}"

    def fit_to(self, total_questions):
        """Drop numbers beyond the exam's range and append any missing ones in order."""
        kept = [n for n in self.question_order if 1 <= n <= total_questions]
        present = set(kept)
        kept.extend(n for n in range(1, total_questions + 1) if n not in present)
        self.question_order = kept
        return self
