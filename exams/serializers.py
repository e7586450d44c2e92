# exams/serializers.py
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from rest_framework import serializers

from .answer_key import parse_answer_key_text, validate_answer_key, validate_question_map
from .models import Exam, Booklet

# --- Helper Serializers ---

class BookletSerializer(serializers.ModelSerializer):
    class Meta:
        model = Booklet
        fields = ['id', 'code', 'question_order']

BOOKLET_CODE_CHOICES = ['A', 'B', 'C', 'D', 'E']

QUESTION_MAP_FIELDS = ('question_subjects', 'question_tests', 'objective_codes', 'objective_names')


def question_map_field():
    # {"<question number>": text}
    return serializers.DictField(child=serializers.CharField(allow_blank=True), required=False)

# --- Exam Serializers ---

class ExamSerializer(serializers.ModelSerializer):
    """Full admin view: includes the answer key and accepts it as a dict or pasted text."""
    answer_key = serializers.DictField(child=serializers.CharField(allow_blank=True), required=False)
    # Pasted key, one "1. A" per line
    answer_key_text = serializers.CharField(write_only=True, required=False, allow_blank=True)
    booklet_codes = serializers.ListField(
        child=serializers.ChoiceField(choices=BOOKLET_CODE_CHOICES), write_only=True, required=False
    )
    question_subjects = question_map_field()
    question_tests = question_map_field()
    objective_codes = question_map_field()
    objective_names = question_map_field()
    booklets = BookletSerializer(many=True, read_only=True)

    class Meta:
        model = Exam
        fields = [
            'id', 'name', 'description', 'subject', 'duration_minutes', 'total_questions',
            'answer_key', 'answer_key_text', 'question_subjects', 'question_tests',
            'objective_codes', 'objective_names', 'is_active', 'booklet_codes', 'booklets',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['total_questions', 'created_at', 'updated_at']

    def validate_duration_minutes(self, value):
        if value <= 0:
            raise serializers.ValidationError("Duration must be a positive number of minutes.")
        return value

    def validate(self, attrs):
        text = attrs.pop('answer_key_text', None)
        try:
            if text:
                attrs['answer_key'] = parse_answer_key_text(text)
            if 'answer_key' in attrs:
                attrs['answer_key'] = validate_answer_key(attrs['answer_key'])
        except DjangoValidationError as exc:
            raise serializers.ValidationError({'answer_key': exc.messages})

        if self.instance is None and 'answer_key' not in attrs:
            raise serializers.ValidationError({'answer_key': "An answer key is required."})
        if 'answer_key' in attrs:
            attrs['total_questions'] = len(attrs['answer_key'])

        total = attrs.get('total_questions', getattr(self.instance, 'total_questions', 0))
        errors = {}
        for name in QUESTION_MAP_FIELDS:
            if name not in attrs:
                continue
            try:
                attrs[name] = validate_question_map(attrs[name], total)
            except DjangoValidationError as exc:
                errors[name] = exc.messages
        if errors:
            raise serializers.ValidationError(errors)
        return attrs

    @transaction.atomic
    def create(self, validated_data):
        codes = validated_data.pop('booklet_codes', None) or ['A']
        exam = Exam.objects.create(**validated_data)
        identity = list(range(1, exam.total_questions + 1))
        for code in dict.fromkeys(codes):
            Booklet.objects.upsert(exam, code, identity)
        return exam

    @transaction.atomic
    def update(self, instance, validated_data):
        codes = validated_data.pop('booklet_codes', None) or []
        previous_total = instance.total_questions
        exam = super().update(instance, validated_data)

        if exam.total_questions != previous_total:
            for booklet in exam.booklets.all():
                booklet.fit_to(exam.total_questions).save(update_fields=['question_order'])
        existing = set(exam.booklet_codes)
        for code in dict.fromkeys(codes):
            if code not in existing:
                Booklet.objects.upsert(exam, code, list(range(1, exam.total_questions + 1)))
        return exam

class ExamPublicSerializer(serializers.ModelSerializer):
    """What an entitled student sees: metadata for grouping, no answer key."""
    booklets = BookletSerializer(many=True, read_only=True)

    class Meta:
        model = Exam
        fields = [
            'id', 'name', 'description', 'subject', 'duration_minutes', 'total_questions',
            'question_subjects', 'question_tests', 'booklets', 'created_at',
        ]

class ExamUploadSerializer(serializers.Serializer):
    file = serializers.FileField()
    name = serializers.CharField(required=False, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    subject = serializers.CharField(required=False, allow_blank=True, default='')
    duration_minutes = serializers.IntegerField(required=False, min_value=1)

    def validate_file(self, value):
        if not value.name.lower().endswith('.xlsx'):
            raise serializers.ValidationError("Only .xlsx spreadsheets are accepted.")
        return value
