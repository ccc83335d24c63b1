import logging

from django.shortcuts import get_object_or_404
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema
from rest_framework import permissions
from rest_framework.views import APIView

from apps.common.responses import success_response

from .models import User
from .permissions import HasRolePermission, IsAdmin, is_admin_user
from .roles import (
    ROLE_HIERARCHY,
    ROLE_PERMISSIONS,
    Permission,
    has_permission,
    permissions_for,
)
from .serializers import UserRoleSerializer, ValidatePermissionSerializer

logger = logging.getLogger(__name__)


@extend_schema(tags=["Roles"], summary="List all permissions and the role map", responses={200: OpenApiTypes.OBJECT})
class PermissionCatalogueView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        return success_response(
            {
                "permissions": [p.value for p in Permission],
                "role_permissions": {
                    role.value: [p.value for p in perms]
                    for role, perms in ROLE_PERMISSIONS.items()
                },
            }
        )


@extend_schema(tags=["Roles"], summary="Current user's role and permissions", responses={200: OpenApiTypes.OBJECT})
class UserPermissionsView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        user = request.user
        return success_response(
            {
                "role": user.role,
                "permissions": permissions_for(user),
                "has_instructor_access": has_permission(user, Permission.COURSE_CREATE),
                "has_admin_access": is_admin_user(user),
            }
        )


@extend_schema(tags=["Roles"], summary="Role hierarchy", responses={200: OpenApiTypes.OBJECT})
class RoleHierarchyView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        return success_response(
            {
                "roles": [role.value for role in User.Role],
                "hierarchy": {
                    role.value: {
                        "level": info["level"],
                        "description": info["description"],
                        "can_manage": [r.value for r in info["can_manage"]],
                    }
                    for role, info in ROLE_HIERARCHY.items()
                },
            }
        )


@extend_schema(
    tags=["Roles"],
    summary="Check whether the current user holds a permission",
    request=ValidatePermissionSerializer,
    responses={200: OpenApiTypes.OBJECT},
)
class ValidatePermissionView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = ValidatePermissionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        permission = serializer.validated_data["permission"]
        allowed = has_permission(request.user, permission)
        return success_response(
            {
                "permission": permission,
                "has_permission": allowed,
                "user_role": request.user.role,
                "message": (
                    "User has the required permission"
                    if allowed
                    else "User does not have the required permission"
                ),
            }
        )


@extend_schema(tags=["Roles"], summary="Switch to instructor mode", responses={200: OpenApiTypes.OBJECT, 403: OpenApiTypes.OBJECT})
class SwitchToInstructorView(APIView):
    """Dual-role accounts: lists the authoring permissions available in instructor mode."""

    permission_classes = [permissions.IsAuthenticated, HasRolePermission]
    required_permission = Permission.ADMIN_SYSTEM

    def put(self, request):
        authoring_prefixes = ("course:create", "course:update", "content:")
        return success_response(
            {
                "role": request.user.role,
                "instructor_permissions": [
                    p for p in permissions_for(request.user) if p.startswith(authoring_prefixes)
                ],
            },
            message="Instructor mode activated",
        )


@extend_schema(tags=["Roles"], summary="Role of a user (admin only)", responses={200: UserRoleSerializer})
class UserRoleView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsAdmin]

    def get(self, request, user_id):
        queryset = User.objects.all()
        if not request.user.is_superuser:
            queryset = queryset.filter(tenant_id=request.user.tenant_id)
        user = get_object_or_404(queryset, pk=user_id)
        return success_response(UserRoleSerializer(user).data)
