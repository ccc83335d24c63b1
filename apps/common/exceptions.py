import logging

from django.core.exceptions import ObjectDoesNotExist
from rest_framework import exceptions, status
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def envelope_exception_handler(exc, context):
    """
    DRF exception handler returning errors in the same envelope as successful
    responses: ``{"success": false, "message": ..., "errors": ...}``.

    Missing ORM objects are reported as 404 instead of bubbling up as 500s.
    """
    if isinstance(exc, ObjectDoesNotExist):
        exc = exceptions.NotFound(str(exc) or "Resource not found.")

    response = exception_handler(exc, context)
    if response is None:
        return None

    data = response.data
    if isinstance(exc, exceptions.ValidationError):
        response.data = {
            "success": False,
            "message": "Request validation failed.",
            "errors": data,
        }
    else:
        detail = data.get("detail") if isinstance(data, dict) else data
        response.data = {"success": False, "message": str(detail)}

    if response.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(f"API error in {context.get('view')}: {exc}")
    return response
