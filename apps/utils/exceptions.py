from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework import status
import logging

logger = logging.getLogger(__name__)


class BusinessLogicException(Exception):
    """
    Raised when a domain rule is violated (e.g. 'Can only rate delivered orders').
    Subclasses only change the HTTP status and the default code.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "business_error"

    def __init__(self, message, code=None):
        self.message = message
        self.code = code or self.default_code
        super().__init__(message)


class NotFound(BusinessLogicException):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "not_found"


class Forbidden(BusinessLogicException):
    status_code = status.HTTP_403_FORBIDDEN
    default_code = "forbidden"


class InvalidTransition(BusinessLogicException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "invalid_transition"


class Conflict(BusinessLogicException):
    """
    The row changed between read and write. Caller should re-read and retry.
    """
    status_code = status.HTTP_409_CONFLICT
    default_code = "conflict"


class DomainValidationError(BusinessLogicException):
    default_code = "validation_error"

    def __init__(self, message, code=None, errors=None):
        self.errors = errors or {}
        super().__init__(message, code)


def custom_exception_handler(exc, context):
    # Call REST framework's default exception handler first
    response = exception_handler(exc, context)

    if isinstance(exc, BusinessLogicException):
        payload = {"error": exc.message, "code": exc.code}
        if getattr(exc, "errors", None):
            payload["errors"] = exc.errors
        return Response(payload, status=exc.status_code)

    # If response is None, it's an unhandled server error (500)
    if response is None:
        logger.error(f"Unhandled Exception: {exc}", exc_info=True)
        return Response(
            {"error": "Internal Server Error", "code": "server_error"},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    return response
