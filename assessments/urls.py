from django.urls import path
from .views import (
    StartExamSessionView,
    ExamSessionDetailView,
    SaveAnswersView,
    SubmitExamSessionView,
    ExamSessionResultView,
    StudentExamSessionsView,
)

urlpatterns = [
    # --- Student Exam Flow ---
    path('exam-sessions/start/', StartExamSessionView.as_view(), name='start-exam'),
    path('exam-sessions/<int:pk>/', ExamSessionDetailView.as_view(), name='session-detail'),
    path('exam-sessions/<int:pk>/answers/', SaveAnswersView.as_view(), name='session-answers'),
    path('exam-sessions/<int:pk>/submit/', SubmitExamSessionView.as_view(), name='submit-exam'),
    path('exam-sessions/<int:pk>/result/', ExamSessionResultView.as_view(), name='session-result'),

    # --- Student Dashboard ---
    path('my-exam-sessions/', StudentExamSessionsView.as_view(), name='student-sessions'),
]
