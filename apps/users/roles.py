"""
Permission catalogue and the permissions granted to each role.

Permissions are plain ``resource:action`` strings so they can be shipped to
frontends as-is and checked without touching the database.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from .models import User


class Permission(models.TextChoices):
    # Courses
    COURSE_READ = "course:read", _("Read courses")
    COURSE_ENROLL = "course:enroll", _("Enroll in courses")
    COURSE_COMPLETE = "course:complete", _("Complete courses")

    # Learning
    LEARNING_PROGRESS = "learning:progress", _("Track learning progress")
    LEARNING_CERTIFICATE = "learning:certificate", _("Receive certificates")
    LEARNING_REVIEW = "learning:review", _("Review courses")
    LEARNING_BOOKMARK = "learning:bookmark", _("Bookmark content")

    # Self-service
    USER_PROFILE_UPDATE = "user:profile_update", _("Update own profile")
    USER_PASSWORD_CHANGE = "user:password_change", _("Change own password")
    USER_SETTINGS = "user:settings", _("Manage own settings")

    # Assessments
    ASSESSMENT_TAKE = "assessment:take", _("Take assessments")
    ASSESSMENT_VIEW_RESULTS = "assessment:view_results", _("View assessment results")
    ASSESSMENT_RETRY = "assessment:retry", _("Retry assessments")

    # Authoring
    COURSE_CREATE = "course:create", _("Create courses")
    COURSE_UPDATE = "course:update", _("Update courses")
    COURSE_DELETE = "course:delete", _("Delete courses")
    CONTENT_CREATE = "content:create", _("Create content")
    CONTENT_UPDATE = "content:update", _("Update content")
    CONTENT_DELETE = "content:delete", _("Delete content")
    STUDENT_PROGRESS_VIEW = "student:progress_view", _("View learner progress")

    # Administration
    ADMIN_SYSTEM = "admin:system", _("System administration")
    ADMIN_COURSES = "admin:courses", _("Administer all courses")
    ADMIN_USERS = "admin:users", _("Administer users")


LEARNER_PERMISSIONS = [
    Permission.COURSE_READ,
    Permission.COURSE_ENROLL,
    Permission.COURSE_COMPLETE,
    Permission.LEARNING_PROGRESS,
    Permission.LEARNING_CERTIFICATE,
    Permission.LEARNING_REVIEW,
    Permission.LEARNING_BOOKMARK,
    Permission.ASSESSMENT_TAKE,
    Permission.ASSESSMENT_VIEW_RESULTS,
    Permission.ASSESSMENT_RETRY,
    Permission.USER_PROFILE_UPDATE,
    Permission.USER_PASSWORD_CHANGE,
    Permission.USER_SETTINGS,
]

INSTRUCTOR_PERMISSIONS = LEARNER_PERMISSIONS + [
    Permission.COURSE_CREATE,
    Permission.COURSE_UPDATE,
    Permission.COURSE_DELETE,
    Permission.CONTENT_CREATE,
    Permission.CONTENT_UPDATE,
    Permission.CONTENT_DELETE,
    Permission.STUDENT_PROGRESS_VIEW,
]

ROLE_PERMISSIONS = {
    User.Role.ADMIN: list(Permission),
    User.Role.INSTRUCTOR: INSTRUCTOR_PERMISSIONS,
    User.Role.LEARNER: LEARNER_PERMISSIONS,
}

ROLE_HIERARCHY = {
    User.Role.ADMIN: {
        "level": 3,
        "description": "System administration and course management",
        "can_manage": [User.Role.INSTRUCTOR, User.Role.LEARNER],
    },
    User.Role.INSTRUCTOR: {
        "level": 2,
        "description": "Course authoring and learner progress review",
        "can_manage": [User.Role.LEARNER],
    },
    User.Role.LEARNER: {
        "level": 1,
        "description": "Self-learning and course enrollment",
        "can_manage": [],
    },
}


def permissions_for(user) -> list[str]:
    if user.is_superuser:
        return [str(p) for p in Permission]
    return [str(p) for p in ROLE_PERMISSIONS.get(user.role, [])]


def has_permission(user, permission) -> bool:
    return str(permission) in permissions_for(user)
