"""Lifecycle of an exam session: start, autosave, submit.

States move ``started -> completed`` exactly once. Writes against a session
that is no longer ``started`` are rejected so a late autosave or a repeated
submit can never change a frozen result.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.http import Http404
from django.utils import timezone

from cores.exceptions import Conflict
from cores.models import PlatformSetting
from exams.answer_key import AnswerKey
from exams.models import Exam
from .models import ExamSession
from .scoring import score_answers

logger = logging.getLogger(__name__)


@dataclass
class ExamResult:
    session: ExamSession
    exam: Exam
    correct_answers: int
    incorrect_answers: int
    empty_answers: int


def remaining_seconds(now, started_at, duration_minutes) -> int:
    """Seconds left before the deadline, never negative."""
    elapsed = (now - started_at).total_seconds()
    return max(0, int(duration_minutes * 60 - elapsed))


def is_overdue(session, grace_seconds=None) -> bool:
    """Whether a submission arrived after the deadline plus the grace period."""
    if session.completed_at is None:
        return False
    if grace_seconds is None:
        grace_seconds = PlatformSetting.load().submit_grace_seconds
    return session.completed_at > session.deadline + timedelta(seconds=grace_seconds)


def start_session(exam, student, booklet_code):
    """Return ``(session, created)``; an open attempt is resumed unchanged."""
    if booklet_code not in exam.booklet_codes:
        raise Conflict(f"Booklet {booklet_code} does not exist for this exam.")

    existing = ExamSession.objects.filter(
        exam=exam, student=student, status=ExamSession.Status.STARTED
    ).first()
    if existing:
        return existing, False

    try:
        with transaction.atomic():
            session = ExamSession.objects.create(
                exam=exam,
                student=student,
                booklet_type=booklet_code,
                student_answers={},
                status=ExamSession.Status.STARTED,
            )
    except IntegrityError:
        # A concurrent start won the race; hand back its session
        return ExamSession.objects.get(exam=exam, student=student, status=ExamSession.Status.STARTED), False

    logger.info(f"Student {student.pk} started exam {exam.pk} with booklet {booklet_code} (session {session.pk})")
    return session, True


def _reject_closed(session_id, verb):
    if not ExamSession.objects.filter(pk=session_id).exists():
        raise Http404("Exam session not found.")
    logger.warning(f"Refused to {verb} session {session_id}: already completed")
    raise Conflict("This exam session has already been submitted.")


def autosave_answers(session_id, answers) -> ExamSession:
    """Replace the stored answers wholesale while the session is still open."""
    updated = ExamSession.objects.filter(
        pk=session_id, status=ExamSession.Status.STARTED
    ).update(student_answers=answers)
    if not updated:
        _reject_closed(session_id, 'autosave')
    return ExamSession.objects.select_related('exam').get(pk=session_id)


def submit_session(session_id, answers) -> ExamResult:
    """Score the final answers and freeze the session."""
    with transaction.atomic():
        try:
            session = (
                ExamSession.objects.select_for_update()
                .select_related('exam')
                .get(pk=session_id)
            )
        except ExamSession.DoesNotExist:
            raise Http404("Exam session not found.")
        if session.status != ExamSession.Status.STARTED:
            _reject_closed(session_id, 'resubmit')

        exam = session.exam
        summary = score_answers(answers, AnswerKey.from_exam(exam))

        session.student_answers = answers
        session.score = summary.correct
        session.percentage = Decimal(str(round(summary.percentage, 2)))
        session.status = ExamSession.Status.COMPLETED
        session.completed_at = timezone.now()
        session.save(update_fields=['student_answers', 'score', 'percentage', 'status', 'completed_at'])

    if is_overdue(session):
        logger.warning(
            f"Session {session.pk} submitted after its deadline "
            f"({session.completed_at.isoformat()} > {session.deadline.isoformat()})"
        )
    logger.info(f"Session {session.pk} submitted: {summary.correct}/{summary.total} correct")

    return ExamResult(
        session=session,
        exam=exam,
        correct_answers=summary.correct,
        incorrect_answers=summary.incorrect,
        empty_answers=summary.empty,
    )
