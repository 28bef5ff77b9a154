"""
Error taxonomy and JSON error responses for MedConnect
"""

import uuid
import logging
from typing import Optional
from datetime import datetime
from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

class ErrorContext:
    """Context object for tracking error information across the request lifecycle"""

    def __init__(self, request: Request):
        self.request_id = str(uuid.uuid4())
        self.request = request
        self.endpoint = str(request.url.path)
        self.method = request.method
        self.client_ip = self._get_client_ip()
        self.user_agent = request.headers.get("user-agent")
        self.timestamp = datetime.utcnow()

    def _get_client_ip(self) -> Optional[str]:
        """Extract client IP from request headers"""
        if "x-forwarded-for" in self.request.headers:
            return self.request.headers["x-forwarded-for"].split(",")[0].strip()
        elif "x-real-ip" in self.request.headers:
            return self.request.headers["x-real-ip"]
        elif self.request.client:
            return self.request.client.host
        return None

class MedConnectError(Exception):
    """Base class for errors raised by the account and upload services"""
    error_code = "INTERNAL_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.message = message
        self.original_error = original_error
        super().__init__(self.message)

class ValidationError(MedConnectError):
    """Bad input caught before any I/O"""
    error_code = "VALIDATION_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST

class AuthError(MedConnectError):
    """The identity provider rejected credentials, or no usable session exists"""
    error_code = "AUTH_ERROR"
    status_code = status.HTTP_401_UNAUTHORIZED

class DuplicateAccountError(AuthError):
    """An account with this email already exists"""
    error_code = "DUPLICATE_ACCOUNT"
    status_code = status.HTTP_409_CONFLICT

class NotFoundError(MedConnectError):
    """A profile or record is absent"""
    error_code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND

class BackendError(MedConnectError):
    """Network, timeout or unexpected backend failure; safe to retry"""
    error_code = "BACKEND_ERROR"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

class ConsistencyError(MedConnectError):
    """A compensating action failed and left orphaned state behind"""
    error_code = "CONSISTENCY_ERROR"

# Messages shown instead of internal details for retryable or server-side failures
PUBLIC_MESSAGES = {
    BackendError: "The service is temporarily unavailable. Please try again.",
    ConsistencyError: "An unexpected error occurred. Please try again later.",
}

class ErrorHandler:
    """Builds the JSON error body for MedConnectError subclasses"""

    @staticmethod
    def public_message(error: MedConnectError) -> str:
        for error_type, message in PUBLIC_MESSAGES.items():
            if isinstance(error, error_type):
                return message
        return error.message

    @staticmethod
    def create_error_response(error_context: ErrorContext, error: MedConnectError) -> JSONResponse:
        """Standard error body: code, message and request tracking fields"""
        error_data = {
            "error": {
                "code": error.error_code,
                "message": ErrorHandler.public_message(error),
                "request_id": error_context.request_id,
                "timestamp": error_context.timestamp.isoformat(),
                "endpoint": error_context.endpoint,
                "method": error_context.method
            }
        }

        ErrorHandler._log_error(error_context, error)

        return JSONResponse(
            status_code=error.status_code,
            content=error_data
        )

    @staticmethod
    def _log_error(error_context: ErrorContext, error: MedConnectError):
        log = logger.error if error.status_code >= 500 else logger.warning
        log(
            f"Error {error_context.request_id}: {error.error_code} in {error_context.method} {error_context.endpoint}: {error.message}",
            extra={
                "request_id": error_context.request_id,
                "status_code": error.status_code,
                "client_ip": error_context.client_ip,
                "user_agent": error_context.user_agent,
                "error_type": type(error).__name__,
                "caused_by": repr(error.original_error) if error.original_error else None
            }
        )

async def medconnect_exception_handler(request: Request, exc: MedConnectError) -> JSONResponse:
    """FastAPI exception handler for the service error taxonomy"""
    return ErrorHandler.create_error_response(ErrorContext(request), exc)
