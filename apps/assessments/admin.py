from django.contrib import admin

from .models import Assessment, AssessmentAttempt


@admin.register(Assessment)
class AssessmentAdmin(admin.ModelAdmin):
    list_display = ("title", "course", "pass_mark_percentage", "is_published")
    search_fields = ("title", "course__title")


@admin.register(AssessmentAttempt)
class AssessmentAttemptAdmin(admin.ModelAdmin):
    list_display = ("user", "assessment", "score", "max_score", "is_passed")
    list_filter = ("is_passed",)
