from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from apps.common.models import TimestampedModel
from apps.courses.models import ContentItem, Course
from apps.users.models import User


class Enrollment(TimestampedModel):
    class Status(models.TextChoices):
        ACTIVE = "ACTIVE", _("Active")
        COMPLETED = "COMPLETED", _("Completed")
        DROPPED = "DROPPED", _("Dropped")

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="enrollments")
    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name="enrollments")
    enrolled_at = models.DateTimeField(default=timezone.now, db_index=True)
    status = models.CharField(
        max_length=15, choices=Status.choices, default=Status.ACTIVE, db_index=True
    )
    completed_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"{self.user.email} in {self.course.title}"

    def mark_as_completed(self):
        if self.status != self.Status.COMPLETED:
            self.status = self.Status.COMPLETED
            self.completed_at = timezone.now()
            self.save(update_fields=["status", "completed_at", "updated_at"])

    class Meta:
        unique_together = ("user", "course")


class LearnerProgress(TimestampedModel):
    """A learner's progress on one content item of an enrolled course."""

    class Status(models.TextChoices):
        NOT_STARTED = "NOT_STARTED", _("Not Started")
        IN_PROGRESS = "IN_PROGRESS", _("In Progress")
        COMPLETED = "COMPLETED", _("Completed")

    enrollment = models.ForeignKey(
        Enrollment, on_delete=models.CASCADE, related_name="progress_items"
    )
    content_item = models.ForeignKey(
        ContentItem, on_delete=models.CASCADE, related_name="progress_records"
    )
    status = models.CharField(
        max_length=15, choices=Status.choices, default=Status.NOT_STARTED, db_index=True
    )
    # completion_percentage, time_spent_minutes, ...
    progress_details = models.JSONField(default=dict, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"{self.enrollment.user.email}: {self.content_item.title} ({self.status})"

    @property
    def is_completed(self):
        return self.status == self.Status.COMPLETED

    @property
    def completion_percentage(self) -> float:
        """0-100; completed items always count as 100."""
        if self.is_completed:
            return 100.0
        try:
            value = float((self.progress_details or {}).get("completion_percentage", 0))
        except (TypeError, ValueError):
            return 0.0
        return max(0.0, min(value, 100.0))

    def mark_as_completed(self, details: dict = None):
        if self.status != self.Status.COMPLETED:
            self.status = self.Status.COMPLETED
            self.completed_at = timezone.now()
            if details:
                self.progress_details.update(details)
            self.save(update_fields=["status", "completed_at", "progress_details", "updated_at"])

    class Meta:
        unique_together = ("enrollment", "content_item")
