from rest_framework import status
from rest_framework.response import Response


def success_response(data=None, message=None, status_code=status.HTTP_200_OK):
    """Wrap a payload in the ``{success, data, message}`` envelope used by every API."""
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    return Response(body, status=status_code)


def error_response(message, status_code=status.HTTP_400_BAD_REQUEST, errors=None):
    body = {"success": False, "message": message}
    if errors is not None:
        body["errors"] = errors
    return Response(body, status=status_code)
