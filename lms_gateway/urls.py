"""
URL configuration for the lms_gateway project.

Every API lives under ``api/v1/``; the OpenAPI schema and its UIs are served
by drf-spectacular under ``api/schema/``.
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import (
    SpectacularAPIView,
    SpectacularRedocView,
    SpectacularSwaggerView,
)

urlpatterns = [
    path("admin/", admin.site.urls),
    # API V1 URLs
    path(
        "api/v1/",
        include(
            [
                path("auth/", include("apps.users.urls")),  # Auth endpoints (login, refresh)
                path("roles/", include("apps.users.role_urls")),
                path("ai-recommendations/", include("apps.recommendations.urls")),
                path("analytics/", include("apps.analytics.urls")),
            ]
        ),
    ),
    # API Schema Documentation (Swagger/Redoc)
    path("api/schema/", SpectacularAPIView.as_view(), name="schema"),
    path(
        "api/schema/swagger-ui/",
        SpectacularSwaggerView.as_view(url_name="schema"),
        name="swagger-ui",
    ),
    path(
        "api/schema/redoc/",
        SpectacularRedocView.as_view(url_name="schema"),
        name="redoc",
    ),
]
