from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from assessments.models import ExamSession
from cores.models import PlatformSetting

pytestmark = pytest.mark.django_db


def start(client, exam, booklet='A'):
    return client.post('/api/exam-sessions/start/', {'exam_id': exam.id, 'booklet_type': booklet}, format='json')


def test_start_requires_entitlement(student_client, exam):
    response = start(student_client, exam)
    assert response.status_code == 403
    assert not ExamSession.objects.exists()


def test_start_hides_unknown_exams_behind_entitlement(student_client):
    response = student_client.post('/api/exam-sessions/start/', {'exam_id': 999, 'booklet_type': 'A'}, format='json')
    assert response.status_code == 403


def test_start_is_idempotent(student_client, entitled_student, exam):
    first = start(student_client, exam, 'B')
    assert first.status_code == 201
    assert first.data['question_order'] == [4, 3, 2, 1]
    assert first.data['time_remaining_seconds'] > 0
    assert 'answer_key' not in first.data['exam']

    second = start(student_client, exam, 'B')
    assert second.status_code == 200
    assert second.data['id'] == first.data['id']


def test_start_with_missing_booklet_conflicts(student_client, entitled_student, exam):
    assert start(student_client, exam, 'C').status_code == 409
    assert start(student_client, exam, 'Z').status_code == 400


def test_admin_starts_without_grant(admin_client, exam):
    assert start(admin_client, exam).status_code == 201


def test_full_attempt(student_client, entitled_student, exam):
    session_id = start(student_client, exam).data['id']

    saved = student_client.put(
        f'/api/exam-sessions/{session_id}/answers/', {'answers': {'1': 'a', '2': 'C'}}, format='json',
    )
    assert saved.status_code == 200
    assert saved.data['student_answers'] == {'1': 'A', '2': 'C'}

    resumed = student_client.get(f'/api/exam-sessions/{session_id}/')
    assert resumed.data['student_answers'] == {'1': 'A', '2': 'C'}

    pending = student_client.get(f'/api/exam-sessions/{session_id}/result/')
    assert pending.status_code == 409

    submitted = student_client.post(
        f'/api/exam-sessions/{session_id}/submit/', {'student_answers': {'1': 'A', '2': 'C', '3': 'C'}}, format='json',
    )
    assert submitted.status_code == 200
    assert submitted.data['correct_answers'] == 2
    assert submitted.data['incorrect_answers'] == 1
    assert submitted.data['empty_answers'] == 1
    assert submitted.data['session']['status'] == 'completed'
    assert submitted.data['session']['percentage'] == '50.00'
    assert submitted.data['exam']['answer_key'] == {'1': 'A', '2': 'B', '3': 'C', '4': 'D'}

    result = student_client.get(f'/api/exam-sessions/{session_id}/result/')
    assert result.status_code == 200
    assert result.data['summary']['net'] == 1.75
    assert [row['test'] for row in result.data['by_test']] == ['Türkçe', 'Matematik']
    assert result.data['answer_key'] == {'1': 'A', '2': 'B', '3': 'C', '4': 'D'}


def test_result_uses_configured_penalty(student_client, entitled_student, exam):
    PlatformSetting.objects.create(wrong_answer_penalty=Decimal('0.5'))
    session_id = start(student_client, exam).data['id']
    student_client.post(
        f'/api/exam-sessions/{session_id}/submit/', {'student_answers': {'1': 'A', '2': 'A'}}, format='json',
    )

    result = student_client.get(f'/api/exam-sessions/{session_id}/result/')
    assert result.data['summary']['net'] == 0.5


def test_writes_after_submit_are_rejected(student_client, entitled_student, exam):
    session_id = start(student_client, exam).data['id']
    student_client.post(f'/api/exam-sessions/{session_id}/submit/', {'student_answers': {'1': 'A'}}, format='json')

    autosave = student_client.put(
        f'/api/exam-sessions/{session_id}/answers/', {'answers': {'1': 'B'}}, format='json',
    )
    resubmit = student_client.post(
        f'/api/exam-sessions/{session_id}/submit/', {'student_answers': {'1': 'B'}}, format='json',
    )
    assert autosave.status_code == 409
    assert resubmit.status_code == 409
    assert ExamSession.objects.get(pk=session_id).student_answers == {'1': 'A'}


@pytest.mark.parametrize('answers', [
    {'1': 'F'},
    {'abc': 'A'},
    {'0': 'A'},
    {'²': 'A'},
    {'٣': 'B'},
    {'1': ['A']},
])
def test_invalid_answers_are_rejected(student_client, entitled_student, exam, answers):
    session_id = start(student_client, exam).data['id']

    autosave = student_client.put(f'/api/exam-sessions/{session_id}/answers/', {'answers': answers}, format='json')
    submit = student_client.post(
        f'/api/exam-sessions/{session_id}/submit/', {'student_answers': answers}, format='json',
    )

    assert autosave.status_code == 400
    assert submit.status_code == 400
    assert ExamSession.objects.get(pk=session_id).status == ExamSession.Status.STARTED


def test_other_students_cannot_touch_a_session(student_client, entitled_student, other_student, exam):
    session_id = start(student_client, exam).data['id']
    intruder = APIClient()
    intruder.force_authenticate(user=other_student)

    assert intruder.get(f'/api/exam-sessions/{session_id}/').status_code == 403
    assert intruder.put(
        f'/api/exam-sessions/{session_id}/answers/', {'answers': {}}, format='json',
    ).status_code == 403
    assert intruder.post(
        f'/api/exam-sessions/{session_id}/submit/', {'student_answers': {}}, format='json',
    ).status_code == 403


def test_unknown_session_is_not_found(student_client):
    assert student_client.get('/api/exam-sessions/999/').status_code == 404


def test_history_lists_own_sessions_newest_first(student_client, entitled_student, other_student, exam):
    first_id = start(student_client, exam).data['id']
    student_client.post(f'/api/exam-sessions/{first_id}/submit/', {'student_answers': {}}, format='json')
    second_id = start(student_client, exam).data['id']
    ExamSession.objects.create(exam=exam, student=other_student, booklet_type='A')

    response = student_client.get('/api/my-exam-sessions/')
    assert response.status_code == 200
    assert [row['id'] for row in response.data] == [second_id, first_id]
    assert response.data[1]['exam_name'] == exam.name


def test_anonymous_requests_are_refused(api_client, exam):
    assert start(api_client, exam).status_code == 401
    assert api_client.get('/api/my-exam-sessions/').status_code == 401
