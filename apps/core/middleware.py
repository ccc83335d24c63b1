import logging
import time

from django.utils.deprecation import MiddlewareMixin
from django.utils.functional import SimpleLazyObject

logger = logging.getLogger(__name__)


def get_tenant(request):
    """Resolve the tenant named by the X-Tenant-Slug header, if any."""
    if not hasattr(request, "_cached_tenant"):
        request._cached_tenant = None
        tenant_slug = request.META.get("HTTP_X_TENANT_SLUG")
        if tenant_slug:
            from .models import Tenant

            request._cached_tenant = Tenant.objects.filter(
                slug=tenant_slug, is_active=True
            ).first()
    return request._cached_tenant


def resolve_organization(request):
    """
    The organization a request acts on.

    Members always act on their own tenant. Superusers have no tenant and
    pick one with the X-Tenant-Slug header.
    """
    user = request.user
    if getattr(user, "tenant_id", None):
        return user.tenant
    tenant = getattr(request, "tenant", None)
    return tenant or None


class TenantMiddleware(MiddlewareMixin):
    """Sets ``request.tenant`` lazily from the X-Tenant-Slug header."""

    def process_request(self, request):
        request.tenant = SimpleLazyObject(lambda: get_tenant(request))


class RequestTimingMiddleware(MiddlewareMixin):
    """Logs method, path, status and duration of every API request."""

    def process_request(self, request):
        request._timing_started = time.monotonic()

    def process_response(self, request, response):
        started = getattr(request, "_timing_started", None)
        if started is not None and request.path_info.startswith("/api/"):
            elapsed_ms = (time.monotonic() - started) * 1000
            logger.info(
                f"{request.method} {request.path_info} -> {response.status_code} in {elapsed_ms:.1f}ms"
            )
        return response
