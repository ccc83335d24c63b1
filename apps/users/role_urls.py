from django.urls import path

from .views import (
    PermissionCatalogueView,
    RoleHierarchyView,
    SwitchToInstructorView,
    UserPermissionsView,
    UserRoleView,
    ValidatePermissionView,
)

app_name = "roles"

urlpatterns = [
    path("permissions/", PermissionCatalogueView.as_view(), name="permissions"),
    path("user/permissions/", UserPermissionsView.as_view(), name="user-permissions"),
    path("hierarchy/", RoleHierarchyView.as_view(), name="hierarchy"),
    path("validate-permission/", ValidatePermissionView.as_view(), name="validate-permission"),
    path("switch-to-instructor/", SwitchToInstructorView.as_view(), name="switch-to-instructor"),
    path("users/<uuid:user_id>/role/", UserRoleView.as_view(), name="user-role"),
]
