import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import viewsets, permissions, status, filters
from rest_framework.decorators import action
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.response import Response

from assessments.permissions import IsAdminRole, HasExamEntitlement
from cores.exceptions import as_api_validation_error
from cores.models import AuditLog
from payments.entitlements import accessible_exams
from .importers import import_spreadsheet
from .models import Exam
from .serializers import ExamSerializer, ExamPublicSerializer, ExamUploadSerializer

logger = logging.getLogger(__name__)


class ExamViewSet(viewsets.ModelViewSet):
    """
    Admins manage every active exam; other users only see exams they are
    entitled to.
    """
    queryset = Exam.objects.filter(is_active=True).prefetch_related('booklets')

    # Enable search on name and subject
    filter_backends = [filters.SearchFilter]
    search_fields = ['name', 'subject']

    def get_queryset(self):
        queryset = super().get_queryset()
        if self.action == 'list':
            return queryset.filter(id__in=accessible_exams(self.request.user).values('id'))
        return queryset

    def get_serializer_class(self):
        if self.action in ('upload', 'upload_answer_key'):
            return ExamUploadSerializer
        user = self.request.user
        if user.is_authenticated and user.is_admin:
            return ExamSerializer
        return ExamPublicSerializer

    def get_permissions(self):
        if self.action == 'list':
            return [permissions.AllowAny()]
        if self.action == 'retrieve':
            return [HasExamEntitlement()]
        return [IsAdminRole()]

    def perform_create(self, serializer):
        exam = serializer.save(created_by=self.request.user)
        AuditLog.record(self.request.user, 'CREATE', exam, f"Created exam: {exam.name} ({exam.total_questions} questions)")

    def perform_update(self, serializer):
        exam = serializer.save()
        AuditLog.record(self.request.user, 'UPDATE', exam, f"Updated exam: {exam.name}")

    def perform_destroy(self, instance):
        # Soft delete keeps historical sessions pointing at a real row
        instance.deactivate()
        AuditLog.record(self.request.user, 'DELETE', instance, f"Deactivated exam: {instance.name}")

    @action(detail=False, methods=['post'], url_path='upload', parser_classes=[MultiPartParser, FormParser])
    def upload(self, request):
        """
        Create an exam from a booklet spreadsheet.
        Form fields: file, name, duration_minutes, description, subject
        """
        serializer = ExamUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            result = import_spreadsheet(
                data['file'],
                name=data.get('name'),
                duration_minutes=data.get('duration_minutes'),
                description=data.get('description', ''),
                subject=data.get('subject') or None,
                created_by=request.user,
            )
        except DjangoValidationError as exc:
            logger.warning(f"Rejected exam spreadsheet {data['file'].name}: {exc.messages}")
            raise as_api_validation_error(exc)

        AuditLog.record(request.user, 'IMPORT', result.exam, f"Imported {data['file'].name}")
        return Response(
            {"message": "Exam created", **result.as_dict()},
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=['post'], url_path='upload', parser_classes=[MultiPartParser, FormParser])
    def upload_answer_key(self, request, pk=None):
        """
        Replace the answer key and booklet orders of an existing exam.
        Sessions already taken keep referring to the same exam.
        """
        exam = self.get_object()
        serializer = ExamUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        upload = serializer.validated_data['file']

        try:
            result = import_spreadsheet(upload, exam=exam)
        except DjangoValidationError as exc:
            logger.warning(f"Rejected answer key {upload.name} for exam {exam.pk}: {exc.messages}")
            raise as_api_validation_error(exc)

        AuditLog.record(request.user, 'IMPORT', exam, f"Re-uploaded answer key from {upload.name}")
        return Response({"message": "Answer key updated", **result.as_dict()})
