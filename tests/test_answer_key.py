import pytest
from django.core.exceptions import ValidationError

from exams.answer_key import AnswerKey, parse_answer_key_text, validate_answer_key, validate_question_map


def test_parse_answer_key_text_accepts_common_separators():
    text = "1. A\n2) c\n\n3 E\n 4-b "
    assert parse_answer_key_text(text) == {'1': 'A', '2': 'C', '3': 'E', '4': 'B'}


def test_parse_answer_key_text_reports_the_bad_line():
    with pytest.raises(ValidationError) as exc:
        parse_answer_key_text("1. A\n2. F")
    assert 'Line 2' in exc.value.messages[0]


def test_parse_answer_key_text_rejects_empty_input():
    with pytest.raises(ValidationError):
        parse_answer_key_text("  \n\n")


def test_validate_answer_key_normalises_letters_and_keeps_blanks():
    assert validate_answer_key({'1': 'a', '2': '', 3: ' d '}) == {'1': 'A', '2': '', '3': 'D'}


@pytest.mark.parametrize('answer_key', [
    {'1': 'A', '3': 'B'},
    {'0': 'A', '1': 'B'},
    {'x': 'A'},
    {'1': 'Z'},
    {'1': '', '2': ''},
    {'01': 'A', '1': 'B'},
    {'1': 'A', ' 1 ': 'B'},
    {'²': 'A'},
])
def test_validate_answer_key_rejects_invalid_keys(answer_key):
    with pytest.raises(ValidationError):
        validate_answer_key(answer_key)


def test_validate_question_map_drops_blanks_and_normalises_numbers():
    mapping = {'01': ' Türkçe ', '2': '', 4: 'Matematik'}
    assert validate_question_map(mapping, 4) == {'1': 'Türkçe', '4': 'Matematik'}


@pytest.mark.parametrize('mapping', [
    {'5': 'Türkçe'},
    {'0': 'Türkçe'},
    {'x': 'Türkçe'},
    {'٣': 'Türkçe'},
    {'1': 'Türkçe', '01': 'Matematik'},
])
def test_validate_question_map_rejects_numbers_outside_the_exam(mapping):
    with pytest.raises(ValidationError):
        validate_question_map(mapping, 4)


def test_answer_key_lookups():
    key = AnswerKey(
        {'1': 'A', '2': ''},
        tests={'1': 'T1'},
        objective_codes={'1': 'M.1'},
        objective_names={'1': 'Sayılar'},
    )
    assert list(key.question_numbers) == [1, 2]
    assert key.get_answer(1) == 'A'
    assert key.get_answer('2') is None
    assert key.get_answer(3) is None

    meta = key.get_metadata(1)
    assert meta.test_label == 'T1'
    assert meta.objective_code == 'M.1'
    assert meta.subject is None
    assert key.get_metadata(2).test_label is None
