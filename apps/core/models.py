from django.db import models

from apps.common.models import TimestampedModel


class Tenant(TimestampedModel):
    """
    An organization using the platform. Every learner, course and
    recommendation is scoped to exactly one tenant.
    """

    name = models.CharField(max_length=255, unique=True)
    slug = models.SlugField(
        max_length=255,
        unique=True,
        help_text="Unique identifier sent by API clients in the X-Tenant-Slug header",
    )
    is_active = models.BooleanField(default=True)

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        from apps.common.utils import generate_unique_slug

        if not self.slug:
            self.slug = generate_unique_slug(self, source_field="name")
        super().save(*args, **kwargs)
