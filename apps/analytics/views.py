import logging

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema
from rest_framework import permissions
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.common.responses import error_response

from .services import AnalyticsProxyError, AnalyticsProxyService

logger = logging.getLogger(__name__)

FORWARDED_HEADERS = ("HTTP_AUTHORIZATION", "HTTP_X_TENANT_SLUG")


@extend_schema(
    tags=["Analytics"],
    summary="Proxy to the analytics service",
    request=OpenApiTypes.OBJECT,
    responses={200: OpenApiTypes.OBJECT},
)
class AnalyticsProxyView(APIView):
    """Relays any request under /analytics/ to ANALYTICS_SERVICE_URL."""

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, path):
        return self.proxy(request, path)

    def post(self, request, path):
        return self.proxy(request, path)

    def put(self, request, path):
        return self.proxy(request, path)

    def patch(self, request, path):
        return self.proxy(request, path)

    def delete(self, request, path):
        return self.proxy(request, path)

    def proxy(self, request, path):
        headers = {
            key[5:].replace("_", "-").title(): request.META[key]
            for key in FORWARDED_HEADERS
            if request.META.get(key)
        }
        try:
            status_code, payload = AnalyticsProxyService().forward(
                request.method,
                path,
                params=request.query_params.dict(),
                data=request.data if request.method in ("POST", "PUT", "PATCH") else None,
                headers=headers,
            )
        except AnalyticsProxyError as e:
            return error_response(e.message, e.status_code)
        return Response(payload, status=status_code)
