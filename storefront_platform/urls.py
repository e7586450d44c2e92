from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),

    # --- Authentication & Profile ---
    path('api/', include('users.urls')),

    # --- Exams (admin CRUD, spreadsheet import, student catalogue) ---
    path('api/', include('exams.urls')),

    # --- Student Exam Sessions & Results ---
    path('api/', include('assessments.urls')),

    # --- Orders & Entitlements ---
    path('api/', include('payments.urls')),

    # --- Platform Settings & Audit Log ---
    path('api/', include('cores.urls')),
]
