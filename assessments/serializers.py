from django.utils import timezone
from rest_framework import serializers

from exams.answer_key import ANSWER_LETTERS
from exams.serializers import ExamPublicSerializer, BOOKLET_CODE_CHOICES
from .models import ExamSession
from .services import remaining_seconds, is_overdue

ALLOWED_ANSWERS = set(ANSWER_LETTERS) | {''}


class AnswersField(serializers.DictField):
    """{"<question number>": "A".."E" or ""}, uppercased and trimmed."""

    def __init__(self, **kwargs):
        super().__init__(child=serializers.CharField(allow_blank=True, trim_whitespace=True), **kwargs)

    def to_internal_value(self, data):
        data = super().to_internal_value(data)
        cleaned = {}
        errors = {}
        for question, answer in data.items():
            if not (question.isascii() and question.isdigit()) or int(question) < 1:
                errors[question] = "Question numbers must be positive integers."
                continue
            letter = answer.upper()
            if letter not in ALLOWED_ANSWERS:
                errors[question] = f"{answer!r} is not one of A-E."
                continue
            cleaned[str(int(question))] = letter
        if errors:
            raise serializers.ValidationError(errors)
        return cleaned


class ExamSessionSerializer(serializers.ModelSerializer):
    """Lightweight serializer for lists / history."""
    exam_name = serializers.CharField(source='exam.name', read_only=True)
    total_questions = serializers.IntegerField(source='exam.total_questions', read_only=True)

    class Meta:
        model = ExamSession
        fields = [
            'id', 'exam_id', 'exam_name', 'total_questions', 'booklet_type', 'status',
            'score', 'percentage', 'started_at', 'completed_at',
        ]
        read_only_fields = fields


class ActiveExamSessionSerializer(ExamSessionSerializer):
    """Heavy serializer for taking the exam: exam metadata, booklet order and timer."""
    exam = ExamPublicSerializer(read_only=True)
    question_order = serializers.SerializerMethodField()
    time_remaining_seconds = serializers.SerializerMethodField()
    is_overdue = serializers.SerializerMethodField()

    class Meta(ExamSessionSerializer.Meta):
        fields = ExamSessionSerializer.Meta.fields + [
            'exam', 'student_answers', 'question_order', 'time_remaining_seconds', 'is_overdue',
        ]

    def get_question_order(self, obj):
        booklet = obj.exam.booklets.filter(code=obj.booklet_type).first()
        if booklet is None:
            return list(range(1, obj.exam.total_questions + 1))
        return booklet.question_order

    def get_time_remaining_seconds(self, obj):
        if obj.status != ExamSession.Status.STARTED:
            return 0
        return remaining_seconds(timezone.now(), obj.started_at, obj.exam.duration_minutes)

    def get_is_overdue(self, obj):
        return is_overdue(obj)


class StartSessionSerializer(serializers.Serializer):
    exam_id = serializers.IntegerField()
    booklet_type = serializers.ChoiceField(choices=BOOKLET_CODE_CHOICES)


class AutosaveSerializer(serializers.Serializer):
    answers = AnswersField()


class SubmitSessionSerializer(serializers.Serializer):
    student_answers = AnswersField()


class ExamResultSerializer(serializers.Serializer):
    session = ActiveExamSessionSerializer(read_only=True)
    exam = serializers.SerializerMethodField()
    correct_answers = serializers.IntegerField()
    incorrect_answers = serializers.IntegerField()
    empty_answers = serializers.IntegerField()

    def get_exam(self, obj):
        # The key is only revealed once the attempt is frozen
        data = ExamPublicSerializer(obj.exam).data
        data['answer_key'] = obj.exam.answer_key
        return data
