"""Scoring and result analytics for exam sessions.

Everything here is a pure function of a session's answers and the exam's
answer key, so a result can be rebuilt from the stored rows at any time.
Only canonical numbers 1..N are counted; stray keys in the answers are ignored.
"""
from dataclasses import dataclass, asdict
from typing import Dict, List, Mapping

from exams.answer_key import AnswerKey

NET_PENALTY = 0.25
DEFAULT_GROUP = 'Genel'


def _chosen(answers: Mapping[str, str], question_number: int) -> str:
    return (answers.get(str(question_number)) or '').strip()


def is_correct(answers, key: AnswerKey, question_number: int) -> bool:
    chosen = _chosen(answers, question_number)
    return bool(chosen) and chosen == key.get_answer(question_number)


def percentage_of(correct: int, total: int) -> float:
    return 100 * correct / total if total else 0.0


@dataclass
class ScoreSummary:
    total: int = 0
    correct: int = 0
    incorrect: int = 0
    empty: int = 0
    percentage: float = 0.0
    net: float = 0.0

    def add(self, answers, key, question_number):
        self.total += 1
        chosen = _chosen(answers, question_number)
        if not chosen:
            self.empty += 1
        elif chosen == key.get_answer(question_number):
            self.correct += 1
        else:
            self.incorrect += 1

    def finish(self, penalty=NET_PENALTY):
        self.percentage = percentage_of(self.correct, self.total)
        self.net = self.correct - float(penalty) * self.incorrect
        return self

    def as_dict(self):
        data = asdict(self)
        data['percentage'] = round(self.percentage, 2)
        data['net'] = round(self.net, 2)
        return data


def score_answers(answers: Mapping[str, str], key: AnswerKey, penalty=NET_PENALTY) -> ScoreSummary:
    summary = ScoreSummary()
    for n in key.question_numbers:
        summary.add(answers, key, n)
    return summary.finish(penalty)


def breakdown_by_test(answers, key: AnswerKey, penalty=NET_PENALTY) -> List[dict]:
    """Per-test results in the order test labels first appear among 1..N."""
    groups: Dict[str, ScoreSummary] = {}
    questions: Dict[str, List[int]] = {}
    for n in key.question_numbers:
        label = key.get_metadata(n).test_label or DEFAULT_GROUP
        groups.setdefault(label, ScoreSummary()).add(answers, key, n)
        questions.setdefault(label, []).append(n)

    return [
        {'test': label, **summary.finish(penalty).as_dict(), 'questions': questions[label]}
        for label, summary in groups.items()
    ]


def breakdown_by_objective(answers, key: AnswerKey) -> List[dict]:
    """Learning objectives grouped by subject.

    Only questions that carry both an objective code and name take part.
    """
    subjects: Dict[str, Dict[tuple, dict]] = {}
    for n in key.question_numbers:
        meta = key.get_metadata(n)
        if not (meta.objective_code and meta.objective_name):
            continue
        objectives = subjects.setdefault(meta.subject or DEFAULT_GROUP, {})
        entry = objectives.setdefault((meta.objective_code, meta.objective_name), {
            'code': meta.objective_code,
            'name': meta.objective_name,
            'total': 0,
            'correct': 0,
            'questions': [],
        })
        entry['total'] += 1
        entry['questions'].append(n)
        if is_correct(answers, key, n):
            entry['correct'] += 1

    result = []
    for subject, objectives in subjects.items():
        rows = []
        for entry in objectives.values():
            entry['percentage'] = round(percentage_of(entry['correct'], entry['total']), 2)
            rows.append(entry)
        result.append({'subject': subject, 'objectives': rows})
    return result


def build_result_report(session, exam, penalty=NET_PENALTY) -> dict:
    key = AnswerKey.from_exam(exam)
    answers = session.student_answers or {}
    return {
        'summary': score_answers(answers, key, penalty).as_dict(),
        'by_test': breakdown_by_test(answers, key, penalty),
        'by_objective': breakdown_by_objective(answers, key),
    }
