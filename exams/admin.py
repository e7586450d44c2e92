from django.contrib import admin

from .models import Exam, Booklet


class BookletInline(admin.TabularInline):
    model = Booklet
    extra = 0


@admin.register(Exam)
class ExamAdmin(admin.ModelAdmin):
    list_display = ('name', 'subject', 'total_questions', 'duration_minutes', 'is_active', 'created_at')
    list_filter = ('is_active', 'subject')
    search_fields = ('name',)
    inlines = [BookletInline]
