from django.db import models
from django.utils.translation import gettext_lazy as _

from apps.common.models import TimestampedModel
from apps.core.models import Tenant


class Course(TimestampedModel):
    """
    Catalogue entry of an organization.

    ``category`` is read as the course's topic and ``tags`` as the skills it
    teaches when learner profiles and content features are derived.
    """

    class Status(models.TextChoices):
        DRAFT = "DRAFT", _("Draft")
        PUBLISHED = "PUBLISHED", _("Published")
        ARCHIVED = "ARCHIVED", _("Archived")

    class DifficultyLevel(models.TextChoices):
        BEGINNER = "beginner", _("Beginner")
        INTERMEDIATE = "intermediate", _("Intermediate")
        ADVANCED = "advanced", _("Advanced")

    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name="courses")
    title = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True)
    category = models.CharField(max_length=100, blank=True)
    tags = models.JSONField(default=list, blank=True)
    difficulty_level = models.CharField(
        max_length=20, choices=DifficultyLevel.choices, default=DifficultyLevel.BEGINNER
    )
    status = models.CharField(
        max_length=10, choices=Status.choices, default=Status.DRAFT, db_index=True
    )

    def __str__(self):
        return self.title

    def save(self, *args, **kwargs):
        from apps.common.utils import generate_unique_slug

        if not self.slug:
            self.slug = generate_unique_slug(self, source_field="title")
        super().save(*args, **kwargs)

    class Meta:
        ordering = ["title"]


class Module(TimestampedModel):
    course = models.ForeignKey(Course, related_name="modules", on_delete=models.CASCADE)
    title = models.CharField(max_length=255)
    position = models.PositiveIntegerField(default=0)

    def __str__(self):
        return f"{self.course.title} / {self.title}"

    class Meta:
        ordering = ["course", "position"]


class ContentItem(TimestampedModel):
    """A lesson, video or other unit of learning inside a module."""

    class ContentType(models.TextChoices):
        TEXT = "TEXT", _("Text")
        DOCUMENT = "DOCUMENT", _("Document")
        VIDEO = "VIDEO", _("Video")
        AUDIO = "AUDIO", _("Audio")
        INTERACTIVE = "INTERACTIVE", _("Interactive")
        QUIZ = "QUIZ", _("Quiz")

    module = models.ForeignKey(Module, related_name="content_items", on_delete=models.CASCADE)
    title = models.CharField(max_length=255)
    content_type = models.CharField(max_length=20, choices=ContentType.choices)
    position = models.PositiveIntegerField(default=0)
    text_content = models.TextField(blank=True, null=True)
    # e.g. {"duration_minutes": 12}
    metadata = models.JSONField(default=dict, blank=True)
    is_published = models.BooleanField(default=False, db_index=True)

    def __str__(self):
        return self.title

    @property
    def course(self):
        return self.module.course

    @property
    def duration_minutes(self):
        duration = (self.metadata or {}).get("duration_minutes")
        try:
            return int(duration) if duration is not None else None
        except (TypeError, ValueError):
            return None

    class Meta:
        ordering = ["module", "position"]
