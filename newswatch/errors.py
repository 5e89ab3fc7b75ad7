"""Error taxonomy shared by the gateway, the OTP flow and the auth services."""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Error categories; each maps to one user-facing recovery."""
    VALIDATION = "validation"
    AUTH = "auth"
    EMAIL_NOT_VERIFIED = "email_not_verified"
    EXPIRED_OR_INVALID_CODE = "expired_or_invalid_code"
    CONFLICT = "conflict"
    NETWORK = "network"
    SERVER = "server"
    RATE_LIMIT = "rate_limit"
    REMOTE_VALIDATION = "remote_validation"
    BACKEND = "backend"


class AuthFlowError(Exception):
    """Base error with kind context. Terminal to the operation that raised it."""

    kind: ErrorKind = ErrorKind.BACKEND

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        cause: Optional[Exception] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.cause = cause
        super().__init__(message)


class FormValidationError(AuthFlowError):
    """Raised client-side before any request is made (bad email, mismatched passwords)."""
    kind = ErrorKind.VALIDATION


class AuthError(AuthFlowError):
    """Raised on 401 / invalid credentials."""
    kind = ErrorKind.AUTH


class EmailNotVerifiedError(AuthError):
    """Raised when login is refused until the email is verified."""
    kind = ErrorKind.EMAIL_NOT_VERIFIED


class ExpiredOrInvalidCodeError(AuthFlowError):
    """Raised when the backend rejects a one-time code."""
    kind = ErrorKind.EXPIRED_OR_INVALID_CODE


class ConflictError(AuthFlowError):
    """Raised when the identifier is already registered."""
    kind = ErrorKind.CONFLICT


class NetworkError(AuthFlowError):
    """Raised when the backend cannot be reached."""
    kind = ErrorKind.NETWORK


class ServerError(AuthFlowError):
    """Raised on 5xx or an unreadable response body."""
    kind = ErrorKind.SERVER


class RateLimitError(ServerError):
    """Raised when the backend rate-limits a request."""
    kind = ErrorKind.RATE_LIMIT


class RemoteValidationError(AuthFlowError):
    """Raised when the backend rejects fields of a request (400 with an errors list)."""
    kind = ErrorKind.REMOTE_VALIDATION

    def __init__(self, message: str, field_errors: dict[str, str], status_code: Optional[int] = None):
        self.field_errors = field_errors
        super().__init__(message, status_code=status_code)


class BackendError(AuthFlowError):
    """Raised for any other unsuccessful backend response."""
    kind = ErrorKind.BACKEND
