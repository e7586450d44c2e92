"""Build an exam's canonical answer key and booklets from an uploaded spreadsheet.

Expected layout of the first worksheet (the first row is a header)::

    Kitapçık | Test | Ders | A Soru | B Soru | ... | Cevap | Kazanım Kodu | Kazanım Adı

Column 0 marks the booklet the row was typed from and is ignored. Every
column between the subject column and the last three holds the position of
the question inside one booklet variant; its header letter names the booklet.
The first variant column is the reference booklet used for numbering.

Canonical numbers are assigned test by test, in the order each test label
first appears in the sheet, and inside a test by reference position. The same
sheet therefore always yields the same numbering.
"""
import logging
import math
import re
import zipfile
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from django.core.exceptions import ValidationError
from django.db import transaction
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from .answer_key import ANSWER_LETTERS
from .models import Booklet, Exam

logger = logging.getLogger(__name__)

TEST_COLUMN = 1
SUBJECT_COLUMN = 2
FIRST_BOOKLET_COLUMN = 3
TRAILING_COLUMNS = 3  # answer, objective code, objective name
MIN_COLUMNS = FIRST_BOOKLET_COLUMN + 1 + TRAILING_COLUMNS

MIXED_SUBJECT = 'Karma'

_POSITION_TEXT = re.compile(r'^\d{1,3}$')
_BOOKLET_HEADER = re.compile(r'^([A-E])(?![A-Za-zÇĞİÖŞÜçğıöşü])')


def _text(value) -> str:
    if value is None:
        return ''
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _is_blank(value) -> bool:
    return _text(value) == ''


def read_position(value) -> Optional[int]:
    """Question position inside a booklet: a number or a 1-3 digit string."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return math.trunc(value) if math.isfinite(value) else None
    text = _text(value)
    if _POSITION_TEXT.match(text):
        return int(text)
    return None


def read_answer(value) -> Optional[str]:
    letter = _text(value).upper()
    return letter if letter in ANSWER_LETTERS else None


@dataclass(frozen=True)
class BookletColumn:
    index: int
    code: str


@dataclass(frozen=True)
class SheetLayout:
    booklets: List[BookletColumn]
    answer: int
    objective_code: int
    objective_name: int

    @property
    def reference(self) -> BookletColumn:
        return self.booklets[0]

    @classmethod
    def from_header(cls, header) -> 'SheetLayout':
        cells = list(header or [])
        while cells and _is_blank(cells[-1]):
            cells.pop()
        if len(cells) < MIN_COLUMNS:
            raise ValidationError(
                "The header must have at least 7 columns: booklet, test, subject, "
                "one position column per booklet, answer, objective code, objective name."
            )

        answer = len(cells) - TRAILING_COLUMNS
        booklets = []
        seen = set()
        for offset, index in enumerate(range(FIRST_BOOKLET_COLUMN, answer)):
            match = _BOOKLET_HEADER.match(_text(cells[index]).upper())
            code = match.group(1) if match else chr(ord('A') + offset)
            if code in seen:
                raise ValidationError(f"Booklet column {code} appears more than once in the header.")
            seen.add(code)
            booklets.append(BookletColumn(index=index, code=code))
        return cls(booklets=booklets, answer=answer, objective_code=answer + 1, objective_name=answer + 2)


@dataclass
class ParsedQuestion:
    row_number: int
    test_label: str
    subject: str = ''
    answer: Optional[str] = None
    objective_code: str = ''
    objective_name: str = ''
    position_by_booklet: Dict[str, int] = field(default_factory=dict)
    canonical: int = 0


@dataclass
class ParsedAnswerKey:
    questions: List[ParsedQuestion]

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def answer_key(self) -> Dict[str, str]:
        # Unknown letters are kept as "" so numbering stays contiguous
        return {str(q.canonical): q.answer or '' for q in self.questions}

    @property
    def answer_count(self) -> int:
        return sum(1 for q in self.questions if q.answer)

    def _metadata(self, attr) -> Dict[str, str]:
        return {str(q.canonical): getattr(q, attr) for q in self.questions if getattr(q, attr)}

    @property
    def question_subjects(self):
        return self._metadata('subject')

    @property
    def question_tests(self):
        return self._metadata('test_label')

    @property
    def objective_codes(self):
        return self._metadata('objective_code')

    @property
    def objective_names(self):
        return self._metadata('objective_name')

    @property
    def booklet_codes(self) -> List[str]:
        return sorted({code for q in self.questions for code in q.position_by_booklet})

    def booklet_orders(self) -> Dict[str, List[int]]:
        codes = self.booklet_codes
        if not codes:
            return {'A': list(range(1, self.total_questions + 1))}

        orders = {}
        for code in codes:
            placed = [q for q in self.questions if code in q.position_by_booklet]
            placed.sort(key=lambda q: q.position_by_booklet[code])
            orders[code] = [q.canonical for q in placed]
        return orders


def read_workbook(file_obj) -> List[list]:
    """Rows of the first worksheet as lists of cell values."""
    try:
        workbook = load_workbook(file_obj, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise ValidationError(f"Could not read the spreadsheet: {exc}")
    try:
        sheet = workbook.worksheets[0]
        return [list(row) for row in sheet.iter_rows(values_only=True)]
    finally:
        workbook.close()


def parse_rows(rows) -> ParsedAnswerKey:
    rows = list(rows)
    if len(rows) < 2:
        raise ValidationError("The spreadsheet has no question rows.")

    layout = SheetLayout.from_header(rows[0])
    width = layout.objective_name + 1

    # dict keeps test labels in the order they first appear
    groups: Dict[str, List[ParsedQuestion]] = {}
    for row_number, row in enumerate(rows[1:], start=2):
        cells = list(row or [])
        if all(_is_blank(c) for c in cells):
            continue
        cells.extend([None] * (width - len(cells)))

        test_label = _text(cells[TEST_COLUMN])
        if not test_label:
            continue

        positions = {}
        for column in layout.booklets:
            position = read_position(cells[column.index])
            if position is not None:
                positions[column.code] = position
        if layout.reference.code not in positions:
            continue

        groups.setdefault(test_label, []).append(ParsedQuestion(
            row_number=row_number,
            test_label=test_label,
            subject=_text(cells[SUBJECT_COLUMN]),
            answer=read_answer(cells[layout.answer]),
            objective_code=_text(cells[layout.objective_code]),
            objective_name=_text(cells[layout.objective_name]),
            position_by_booklet=positions,
        ))

    reference = layout.reference.code
    questions = []
    for members in groups.values():
        members.sort(key=lambda q: q.position_by_booklet[reference])
        for question in members:
            question.canonical = len(questions) + 1
            questions.append(question)

    parsed = ParsedAnswerKey(questions)
    if parsed.answer_count == 0:
        raise ValidationError(
            "No usable rows found: every question needs a position in the first booklet column "
            "and an A-E answer."
        )
    return parsed


@dataclass
class ImportResult:
    exam: Exam
    created: bool
    booklets: List[str]
    answer_count: int

    def as_dict(self):
        return {
            'exam_id': self.exam.id,
            'total_questions': self.exam.total_questions,
            'booklets': self.booklets,
            'answer_count': self.answer_count,
        }


def persist_import(parsed: ParsedAnswerKey, *, exam=None, name=None, duration_minutes=None,
                   description='', subject=MIXED_SUBJECT, created_by=None) -> ImportResult:
    """Create a new exam from ``parsed`` or replace the key of ``exam``.

    Exam and booklets are written in one transaction.
    """
    if exam is None:
        name = (name or '').strip()
        if not name or not duration_minutes or duration_minutes <= 0:
            raise ValidationError("Exam name and a positive duration are required.")

    key_fields = {
        'total_questions': parsed.total_questions,
        'answer_key': parsed.answer_key,
        'question_subjects': parsed.question_subjects,
        'question_tests': parsed.question_tests,
        'objective_codes': parsed.objective_codes,
        'objective_names': parsed.objective_names,
    }
    orders = parsed.booklet_orders()

    with transaction.atomic():
        created = exam is None
        if created:
            exam = Exam.objects.create(
                name=name,
                description=description or '',
                subject=subject or MIXED_SUBJECT,
                duration_minutes=duration_minutes,
                created_by=created_by,
                is_active=True,
                **key_fields,
            )
        else:
            for attr, value in key_fields.items():
                setattr(exam, attr, value)
            exam.save(update_fields=[*key_fields, 'updated_at'])

        for code, order in orders.items():
            Booklet.objects.upsert(exam, code, order)

        # Booklets missing from this upload must still fit the new numbering
        for stale in exam.booklets.exclude(code__in=list(orders)):
            stale.fit_to(exam.total_questions).save(update_fields=['question_order'])

    logger.info(
        f"{'Created' if created else 'Updated'} exam {exam.id} from spreadsheet: "
        f"{exam.total_questions} questions, booklets {', '.join(orders)}"
    )
    return ImportResult(exam=exam, created=created, booklets=list(orders), answer_count=parsed.answer_count)


def import_spreadsheet(file_obj, **kwargs) -> ImportResult:
    return persist_import(parse_rows(read_workbook(file_obj)), **kwargs)
