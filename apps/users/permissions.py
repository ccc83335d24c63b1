from rest_framework import permissions

from apps.users.models import User


def is_admin_user(user) -> bool:
    """
    Check if user has admin privileges.

    Admin privileges are granted to superusers, users with the ADMIN role and
    Django staff users.
    """
    if not user or not getattr(user, "is_authenticated", False):
        return False
    return user.is_superuser or user.role == User.Role.ADMIN or user.is_staff


class IsAdmin(permissions.BasePermission):
    """
    Allows access only to users with admin privileges.

    Unlike DRF's IsAdminUser this also honours the ADMIN role, not just is_staff.
    """

    def has_permission(self, request, view):
        return is_admin_user(request.user)


class IsOrganizationMember(permissions.BasePermission):
    """Authenticated users acting inside an organization (their tenant)."""

    message = "Organization context required."

    def has_permission(self, request, view):
        from apps.core.middleware import resolve_organization

        user = request.user
        if not user or not user.is_authenticated:
            return False
        return resolve_organization(request) is not None


class HasRolePermission(permissions.BasePermission):
    """
    Checks ``view.required_permission`` against the caller's role permissions.
    """

    message = "You do not have the required permission."

    def has_permission(self, request, view):
        from .roles import has_permission

        required = getattr(view, "required_permission", None)
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return required is None or has_permission(user, required)
