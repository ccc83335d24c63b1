import uuid

from django.utils.text import slugify


def generate_unique_slug(instance, source_field="name", slug_field="slug"):
    """Slug from ``source_field``, suffixed with -1, -2, ... until it is unused."""
    if getattr(instance, slug_field):  # Explicit slugs are kept as given
        return getattr(instance, slug_field)

    base_slug = slugify(getattr(instance, source_field) or "")
    if not base_slug:
        base_slug = slugify(str(uuid.uuid4())[:8])

    ModelClass = instance.__class__
    slug = base_slug
    counter = 1
    while (
        ModelClass.objects.filter(**{slug_field: slug}).exclude(pk=instance.pk).exists()
    ):
        slug = f"{base_slug}-{counter}"
        counter += 1

    return slug


def parse_csv_param(value) -> list[str]:
    """Split a comma separated query parameter into trimmed, non-empty values."""
    if not value:
        return []
    return [item.strip() for item in str(value).split(",") if item.strip()]


def parse_bool_param(value, default=False) -> bool:
    if value is None:
        return default
    return str(value).strip().lower() in ("1", "true", "yes", "on")
