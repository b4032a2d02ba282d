import logging
import time
from django.utils.deprecation import MiddlewareMixin
from django.http import JsonResponse

logger = logging.getLogger(__name__)


class RequestLogMiddleware(MiddlewareMixin):
    """
    One log line per API request: method, path, status, duration.
    """
    def process_request(self, request):
        request._started_at = time.monotonic()

    def process_response(self, request, response):
        if request.path.startswith('/api/'):
            started = getattr(request, '_started_at', None)
            elapsed_ms = (time.monotonic() - started) * 1000 if started else 0.0
            user = getattr(request, 'user', None)
            logger.info(
                f"{request.method} {request.path} -> {response.status_code} ({elapsed_ms:.1f}ms)",
                extra={
                    "request_path": request.path,
                    "user_id": getattr(user, 'pk', None),
                },
            )
        return response


class GlobalExceptionMiddleware(MiddlewareMixin):
    """
    Last line of defense for non-DRF views.
    """
    def process_exception(self, request, exception):
        logger.exception(f"Unhandled Middleware Exception: {str(exception)}")
        if request.path.startswith('/api/'):
            return JsonResponse(
                {"error": "Internal System Error", "code": "server_error"},
                status=500
            )
        return None  # Let Django's default 500 handler work for HTML
