"""Builders for the course tree and learning history used across recommendation tests."""

from apps.core.models import Tenant
from apps.courses.models import ContentItem, Course, Module
from apps.enrollments.models import Enrollment, LearnerProgress
from apps.recommendations.features import ContentFeatureExtractor
from apps.recommendations.models import ContentFeatures
from apps.users.models import User


def make_tenant(name="Acme Learning"):
    return Tenant.objects.create(name=name)


def make_user(tenant, email, **extra):
    return User.objects.create_user(email=email, password="testpass123", tenant=tenant, **extra)


def make_course(tenant, title, category="", tags=None, difficulty_level=Course.DifficultyLevel.BEGINNER):
    return Course.objects.create(
        tenant=tenant,
        title=title,
        category=category,
        tags=tags or [],
        difficulty_level=difficulty_level,
        status=Course.Status.PUBLISHED,
    )


def make_content(course, title, content_type=ContentItem.ContentType.VIDEO, duration_minutes=None, text=""):
    module = course.modules.first() or Module.objects.create(course=course, title=f"{course.title} basics")
    metadata = {"duration_minutes": duration_minutes} if duration_minutes is not None else {}
    return ContentItem.objects.create(
        module=module,
        title=title,
        content_type=content_type,
        text_content=text,
        metadata=metadata,
        is_published=True,
    )


def make_features(content_item):
    values = ContentFeatureExtractor().extract(content_item)
    return ContentFeatures.objects.create(
        tenant=content_item.module.course.tenant, content_item=content_item, **values
    )


def enroll(user, course, completed=False):
    enrollment, _ = Enrollment.objects.get_or_create(user=user, course=course)
    if completed:
        enrollment.mark_as_completed()
    return enrollment


def record_progress(user, content_item, completed=False, percentage=None):
    enrollment = enroll(user, content_item.module.course)
    details = {"completion_percentage": percentage} if percentage is not None else {}
    progress = LearnerProgress.objects.create(
        enrollment=enrollment,
        content_item=content_item,
        status=LearnerProgress.Status.IN_PROGRESS,
        progress_details=details,
    )
    if completed:
        progress.mark_as_completed()
    return progress
