from datetime import timedelta
from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction
from django.db.models.query import QuerySet
from django.http import Http404
from django.utils import timezone

from assessments.models import ExamSession
from assessments.services import (
    autosave_answers, is_overdue, remaining_seconds, start_session, submit_session,
)
from cores.exceptions import Conflict

pytestmark = pytest.mark.django_db


def test_start_creates_then_resumes(exam, student):
    session, created = start_session(exam, student, 'B')
    assert created
    assert session.status == ExamSession.Status.STARTED
    assert session.student_answers == {}

    again, created_again = start_session(exam, student, 'A')
    assert not created_again
    assert again.pk == session.pk
    # The open attempt keeps the booklet it was started with
    assert again.booklet_type == 'B'
    assert ExamSession.objects.filter(exam=exam, student=student).count() == 1


def test_start_returns_the_session_created_by_a_concurrent_start(exam, student, monkeypatch):
    winner = ExamSession.objects.create(exam=exam, student=student, booklet_type='A')
    # The pre-check misses the row, as when another request inserts it in between
    monkeypatch.setattr(QuerySet, 'first', lambda self: None)

    session, created = start_session(exam, student, 'B')

    assert not created
    assert session.pk == winner.pk
    assert session.booklet_type == 'A'
    assert ExamSession.objects.filter(exam=exam, student=student).count() == 1


def test_only_one_started_session_per_student_and_exam(exam, student, other_student):
    ExamSession.objects.create(exam=exam, student=student, booklet_type='A')
    with pytest.raises(IntegrityError):
        with transaction.atomic():
            ExamSession.objects.create(exam=exam, student=student, booklet_type='B')

    ExamSession.objects.create(exam=exam, student=other_student, booklet_type='A')
    ExamSession.objects.create(
        exam=exam, student=student, booklet_type='A', status=ExamSession.Status.COMPLETED,
    )
    assert ExamSession.objects.filter(exam=exam).count() == 3


def test_start_rejects_unknown_booklet(exam, student):
    with pytest.raises(Conflict):
        start_session(exam, student, 'E')


def test_new_attempt_allowed_after_completion(exam, student):
    first, _ = start_session(exam, student, 'A')
    submit_session(first.pk, {'1': 'A'})

    second, created = start_session(exam, student, 'A')
    assert created
    assert second.pk != first.pk


def test_autosave_replaces_answers_wholesale(exam, student):
    session, _ = start_session(exam, student, 'A')
    autosave_answers(session.pk, {'1': 'A', '2': 'B'})
    saved = autosave_answers(session.pk, {'3': 'C'})
    assert saved.student_answers == {'3': 'C'}


def test_submit_scores_and_freezes(exam, student):
    session, _ = start_session(exam, student, 'A')
    autosave_answers(session.pk, {'1': 'E'})

    result = submit_session(session.pk, {'1': 'A', '2': 'C', '3': ''})

    assert (result.correct_answers, result.incorrect_answers, result.empty_answers) == (1, 1, 2)
    session.refresh_from_db()
    assert session.status == ExamSession.Status.COMPLETED
    assert session.score == 1
    assert session.percentage == Decimal('25.00')
    assert session.student_answers == {'1': 'A', '2': 'C', '3': ''}
    assert session.completed_at is not None


def test_completed_session_rejects_autosave_and_resubmit(exam, student):
    session, _ = start_session(exam, student, 'A')
    submit_session(session.pk, {'1': 'A'})

    with pytest.raises(Conflict):
        autosave_answers(session.pk, {'1': 'B', '2': 'B'})
    with pytest.raises(Conflict):
        submit_session(session.pk, {'1': 'A', '2': 'B', '3': 'C', '4': 'D'})

    session.refresh_from_db()
    assert session.student_answers == {'1': 'A'}
    assert session.score == 1


def test_missing_session_is_not_found():
    with pytest.raises(Http404):
        autosave_answers(999, {})
    with pytest.raises(Http404):
        submit_session(999, {})


def test_remaining_seconds_never_negative():
    started = timezone.now()
    assert remaining_seconds(started + timedelta(minutes=10), started, 30) == 20 * 60
    assert remaining_seconds(started + timedelta(hours=2), started, 30) == 0


def test_late_submission_is_accepted_but_flagged(exam, student):
    session, _ = start_session(exam, student, 'A')
    ExamSession.objects.filter(pk=session.pk).update(started_at=timezone.now() - timedelta(hours=3))

    result = submit_session(session.pk, {'1': 'A'})

    assert result.session.status == ExamSession.Status.COMPLETED
    assert is_overdue(result.session, grace_seconds=60)


def test_on_time_submission_is_not_overdue(exam, student):
    session, _ = start_session(exam, student, 'A')
    result = submit_session(session.pk, {})
    assert not is_overdue(result.session)
    assert not is_overdue(session)
