import io

import pytest
from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from openpyxl import Workbook
from rest_framework.test import APIClient

from exams.models import Booklet, Exam
from payments.entitlements import grant
from users.models import User

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

DEFAULT_HEADER = ['Kitapçık', 'Test', 'Ders', 'A Soru', 'B Soru', 'Cevap', 'Kazanım Kodu', 'Kazanım Adı']

# Tests appear as T2, T1, T3 so numbering must follow the sheet, not the label
DEFAULT_ROWS = [
    ['A', 'T2', 'Fen', 3, 1, 'B', 'F.1', 'Kuvvet'],
    ['A', 'T1', 'Matematik', 1, 4, 'a', 'M.1', 'Sayılar'],
    ['A', 'T2', 'Fen', 2, 3, 'C', 'F.1', 'Kuvvet'],
    ['A', 'T3', 'Türkçe', 4, 2, 'D', None, None],
]


@pytest.fixture(autouse=True)
def clear_cache():
    # PlatformSetting is cached across requests
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client():
    return APIClient()


def _create_user(email, role=User.Role.USER, **extra):
    return User.objects.create_user(
        username=email, email=email, password='secret123',
        first_name='Test', last_name='User', role=role, **extra,
    )


@pytest.fixture
def student(db):
    return _create_user('ogrenci@example.com')


@pytest.fixture
def other_student(db):
    return _create_user('diger@example.com')


@pytest.fixture
def admin(db):
    return _create_user('admin@example.com', role=User.Role.ADMIN)


@pytest.fixture
def student_client(student):
    client = APIClient()
    client.force_authenticate(user=student)
    return client


@pytest.fixture
def admin_client(admin):
    client = APIClient()
    client.force_authenticate(user=admin)
    return client


@pytest.fixture
def make_exam(admin):
    def _make(answer_key=None, booklets=None, **fields):
        answer_key = answer_key or {'1': 'A', '2': 'B', '3': 'C', '4': 'D'}
        total = len(answer_key)
        values = {
            'name': 'TYT Deneme 1',
            'subject': 'Karma',
            'duration_minutes': 120,
            'answer_key': answer_key,
            'total_questions': total,
            'created_by': admin,
        }
        values.update(fields)
        exam = Exam.objects.create(**values)
        for code, order in (booklets or {'A': list(range(1, total + 1))}).items():
            Booklet.objects.create(exam=exam, code=code, question_order=order)
        return exam
    return _make


@pytest.fixture
def exam(make_exam):
    return make_exam(
        answer_key={'1': 'A', '2': 'B', '3': 'C', '4': 'D'},
        booklets={'A': [1, 2, 3, 4], 'B': [4, 3, 2, 1]},
        question_tests={'1': 'Türkçe', '2': 'Türkçe', '3': 'Matematik', '4': 'Matematik'},
        question_subjects={'1': 'Türkçe', '2': 'Türkçe', '3': 'Matematik', '4': 'Matematik'},
    )


@pytest.fixture
def entitled_student(student, exam):
    grant(student, exam)
    return student


@pytest.fixture
def build_xlsx():
    """Return a function that writes header and rows into an in-memory .xlsx file."""
    def _build(rows=None, header=None):
        workbook = Workbook()
        sheet = workbook.active
        sheet.append(header or DEFAULT_HEADER)
        for row in (DEFAULT_ROWS if rows is None else rows):
            sheet.append(row)
        buffer = io.BytesIO()
        workbook.save(buffer)
        buffer.seek(0)
        return buffer
    return _build


@pytest.fixture
def xlsx_upload(build_xlsx):
    def _upload(rows=None, header=None, name='cevap_anahtari.xlsx'):
        return SimpleUploadedFile(name, build_xlsx(rows, header).getvalue(), content_type=XLSX_CONTENT_TYPE)
    return _upload
