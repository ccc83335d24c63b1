from django.contrib import admin

from .models import Enrollment, LearnerProgress


@admin.register(Enrollment)
class EnrollmentAdmin(admin.ModelAdmin):
    list_display = ("user", "course", "status", "enrolled_at", "completed_at")
    list_filter = ("status",)
    search_fields = ("user__email", "course__title")


@admin.register(LearnerProgress)
class LearnerProgressAdmin(admin.ModelAdmin):
    list_display = ("enrollment", "content_item", "status", "completed_at")
    list_filter = ("status",)
