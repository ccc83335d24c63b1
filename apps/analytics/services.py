import logging

import requests
from django.conf import settings

logger = logging.getLogger(__name__)


class AnalyticsProxyError(Exception):
    """Raised when the analytics service cannot be reached or answers with an error."""

    def __init__(self, message, status_code=500):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AnalyticsProxyService:
    """Forwards requests to the standalone analytics service."""

    UNAVAILABLE_MESSAGE = "Analytics service unavailable"

    def __init__(self, base_url=None, timeout=None):
        self.base_url = (base_url or settings.ANALYTICS_SERVICE_URL).rstrip("/")
        self.timeout = timeout or settings.ANALYTICS_SERVICE_TIMEOUT

    def build_url(self, path) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def forward(self, method, path, params=None, data=None, headers=None):
        """
        Send ``method`` to ``path`` on the analytics service and return
        ``(status_code, payload)``. Upstream error responses and transport
        failures are raised as AnalyticsProxyError.
        """
        url = self.build_url(path)
        logger.debug(f"Proxying {method} {url}")
        try:
            response = requests.request(
                method,
                url,
                params=params,
                json=data if method not in ("GET", "DELETE") else None,
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            status_code = e.response.status_code
            message = self._upstream_message(e.response) or self.UNAVAILABLE_MESSAGE
            logger.warning(f"Analytics service answered {status_code} for {method} {url}: {message}")
            raise AnalyticsProxyError(message, status_code) from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Analytics proxy error for {method} {url}: {e}", exc_info=True)
            raise AnalyticsProxyError(self.UNAVAILABLE_MESSAGE) from e

        return response.status_code, self._payload(response)

    @staticmethod
    def _payload(response):
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return {"data": response.text}

    @staticmethod
    def _upstream_message(response):
        try:
            body = response.json()
        except ValueError:
            return None
        if isinstance(body, dict):
            return body.get("message")
        return None
