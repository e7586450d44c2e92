"""Canonical answer key of an exam and the lookups scoring relies on.

Every map is keyed by the canonical question number as a string ("1".."N"),
which is how the values are stored on the ``Exam`` row.
"""
import re
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from django.core.exceptions import ValidationError

ANSWER_LETTERS = ('A', 'B', 'C', 'D', 'E')

_KEY_LINE = re.compile(r'^\s*(\d+)\s*[.):-]?\s*([A-Ea-e])\s*$')


@dataclass(frozen=True)
class QuestionMetadata:
    subject: Optional[str] = None
    test_label: Optional[str] = None
    objective_code: Optional[str] = None
    objective_name: Optional[str] = None


class AnswerKey:
    def __init__(
        self,
        answers: Mapping[str, str],
        subjects: Optional[Mapping[str, str]] = None,
        tests: Optional[Mapping[str, str]] = None,
        objective_codes: Optional[Mapping[str, str]] = None,
        objective_names: Optional[Mapping[str, str]] = None,
        total_questions: Optional[int] = None,
    ):
        self.answers = dict(answers or {})
        self.subjects = dict(subjects or {})
        self.tests = dict(tests or {})
        self.objective_codes = dict(objective_codes or {})
        self.objective_names = dict(objective_names or {})
        self.total_questions = len(self.answers) if total_questions is None else total_questions

    @classmethod
    def from_exam(cls, exam) -> 'AnswerKey':
        return cls(
            exam.answer_key,
            subjects=exam.question_subjects,
            tests=exam.question_tests,
            objective_codes=exam.objective_codes,
            objective_names=exam.objective_names,
            total_questions=exam.total_questions,
        )

    @property
    def question_numbers(self):
        return range(1, self.total_questions + 1)

    def get_answer(self, question_number) -> Optional[str]:
        return self.answers.get(str(question_number)) or None

    def get_metadata(self, question_number) -> QuestionMetadata:
        n = str(question_number)
        return QuestionMetadata(
            subject=self.subjects.get(n) or None,
            test_label=self.tests.get(n) or None,
            objective_code=self.objective_codes.get(n) or None,
            objective_name=self.objective_names.get(n) or None,
        )


def parse_answer_key_text(text: str) -> Dict[str, str]:
    """Parse a pasted key such as ``"1. A\\n2) c\\n3 E"`` into ``{"1": "A", ...}``."""
    answer_key = {}
    for line_no, line in enumerate((text or '').splitlines(), start=1):
        if not line.strip():
            continue
        match = _KEY_LINE.match(line)
        if not match:
            raise ValidationError(f"Line {line_no} is not in the '1. A' format: {line.strip()!r}")
        question, letter = match.groups()
        answer_key[str(int(question))] = letter.upper()
    if not answer_key:
        raise ValidationError("The answer key is empty.")
    return answer_key


def question_number(raw) -> int:
    """Parse a question number key such as ``"12"``; ASCII digits only."""
    text = str(raw).strip()
    if not (text.isascii() and text.isdigit()):
        raise ValidationError(f"Question number {raw!r} is not an integer.")
    return int(text)


def validate_answer_key(answer_key: Mapping) -> Dict[str, str]:
    """Normalise letters and check the keys form the contiguous range 1..N.

    An empty string is allowed as a value and marks a question without a
    known correct letter.
    """
    normalised = {}
    for question, letter in answer_key.items():
        number = question_number(question)
        if str(number) in normalised:
            raise ValidationError(f"Question {number} appears more than once.")
        value = str(letter or '').strip().upper()
        if value and value not in ANSWER_LETTERS:
            raise ValidationError(f"Question {number}: {letter!r} is not one of A-E.")
        normalised[str(number)] = value

    expected = {str(n) for n in range(1, len(normalised) + 1)}
    if set(normalised) != expected:
        raise ValidationError("Question numbers must run from 1 without gaps.")
    if not any(normalised.values()):
        raise ValidationError("The answer key has no valid A-E answers.")
    return normalised


def validate_question_map(mapping: Mapping, total_questions: int) -> Dict[str, str]:
    """Check a metadata map (subject, test label, objective) against 1..N.

    Blank values are dropped, as the importer never stores them.
    """
    normalised = {}
    for question, value in mapping.items():
        number = question_number(question)
        if not 1 <= number <= total_questions:
            raise ValidationError(f"Question {number} is outside 1..{total_questions}.")
        if str(number) in normalised:
            raise ValidationError(f"Question {number} appears more than once.")
        value = str(value).strip()
        if value:
            normalised[str(number)] = value
    return normalised
