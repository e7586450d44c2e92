from rest_framework import generics, permissions, status, views
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response
from django.shortcuts import get_object_or_404

from cores.exceptions import Conflict
from cores.models import PlatformSetting
from exams.models import Exam
from payments.entitlements import has_access
from .models import ExamSession
from .permissions import IsSessionOwnerOrAdmin
from .scoring import build_result_report
from .serializers import (
    ExamSessionSerializer, ActiveExamSessionSerializer, StartSessionSerializer,
    AutosaveSerializer, SubmitSessionSerializer, ExamResultSerializer,
)
from .services import start_session, autosave_answers, submit_session


class SessionObjectMixin:
    """Loads the session from the URL and runs the object-level capability check."""
    permission_classes = [IsSessionOwnerOrAdmin]

    def get_session(self, pk):
        session = get_object_or_404(ExamSession.objects.select_related('exam'), pk=pk)
        self.check_object_permissions(self.request, session)
        return session


class StartExamSessionView(views.APIView):
    """
    Student starts an exam under a booklet.
    Resumes the open attempt if one exists (200), otherwise creates it (201).
    """
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = StartSessionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        exam_id = serializer.validated_data['exam_id']

        # Entitlement first: an unknown exam id gets the same denial
        if not has_access(request.user, exam_id):
            raise PermissionDenied("You do not have access to this exam. Purchase the related package first.")

        exam = get_object_or_404(Exam, pk=exam_id, is_active=True)
        session, created = start_session(exam, request.user, serializer.validated_data['booklet_type'])

        return Response(
            ActiveExamSessionSerializer(session).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )


class ExamSessionDetailView(SessionObjectMixin, views.APIView):
    def get(self, request, pk):
        session = self.get_session(pk)
        return Response(ActiveExamSessionSerializer(session).data)


class SaveAnswersView(SessionObjectMixin, views.APIView):
    """Autosave: overwrites the stored answers with the payload."""

    def put(self, request, pk):
        self.get_session(pk)
        serializer = AutosaveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        session = autosave_answers(pk, serializer.validated_data['answers'])
        return Response(ActiveExamSessionSerializer(session).data)


class SubmitExamSessionView(SessionObjectMixin, views.APIView):
    """
    Student submits the final answers.
    Scores them immediately and freezes the session.
    """

    def post(self, request, pk):
        self.get_session(pk)
        serializer = SubmitSessionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = submit_session(pk, serializer.validated_data['student_answers'])
        return Response(ExamResultSerializer(result).data)


class ExamSessionResultView(SessionObjectMixin, views.APIView):
    """Full results view: summary, net score, per-test and per-objective analytics."""

    def get(self, request, pk):
        session = self.get_session(pk)
        if not session.is_completed:
            raise Conflict("Results are available once the exam is submitted.")

        penalty = PlatformSetting.load().wrong_answer_penalty
        report = build_result_report(session, session.exam, penalty=penalty)
        return Response({
            'session': ActiveExamSessionSerializer(session).data,
            'answer_key': session.exam.answer_key,
            **report,
        })


class StudentExamSessionsView(generics.ListAPIView):
    """List all exam sessions for the logged-in student, newest first."""
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = ExamSessionSerializer
    pagination_class = None

    def get_queryset(self):
        return (
            ExamSession.objects.filter(student=self.request.user)
            .select_related('exam')
            .order_by('-started_at', '-id')
        )
