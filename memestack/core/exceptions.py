"""
Typed failures raised by services and the auth boundary.

Every class pins an HTTP status, a machine-readable `error_code` and a default
message; the global handlers in `memestack.core.error_handlers` turn them into
the error envelope.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


def _identified(key: str, value: Optional[Any]) -> Dict[str, Any]:
    return {} if value is None else {key: str(value)}


class AppException(HTTPException):
    """Base class for all application failures."""

    http_status: int = status.HTTP_400_BAD_REQUEST
    error_code: str = "bad_request"
    message: str = "The request could not be processed"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        *,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.message = message or self.message
        self.details = dict(details or {})
        super().__init__(
            status_code=self.http_status,
            detail={
                "error_code": self.error_code,
                "message": self.message,
                "details": self.details,
            },
            headers=headers,
        )


# ==================== Authentication ====================


class AuthenticationException(AppException):
    http_status = status.HTTP_401_UNAUTHORIZED
    error_code = "authentication_failed"
    message = "Authentication failed"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        *,
        error_code: Optional[str] = None,
    ):
        if error_code:
            self.error_code = error_code
        super().__init__(message, details, headers={"WWW-Authenticate": "Bearer"})


class InvalidTokenException(AuthenticationException):
    error_code = "invalid_token"
    message = "Invalid authentication token"


class AccountSuspendedException(AppException):
    """Banned accounts, or a suspension that has not run out yet."""

    http_status = status.HTTP_403_FORBIDDEN
    error_code = "account_suspended"
    message = "Your account has been suspended"

    def __init__(self, until: Optional[str] = None):
        super().__init__(details=_identified("suspended_until", until))


# ==================== Roles and visibility ====================


class PermissionDeniedException(AppException):
    http_status = status.HTTP_403_FORBIDDEN
    error_code = "permission_denied"
    message = "You don't have permission to perform this action"


# ==================== Missing or clashing records ====================


class ResourceNotFoundException(AppException):
    http_status = status.HTTP_404_NOT_FOUND
    error_code = "resource_not_found"

    def __init__(self, resource: str, identifier: Optional[Any] = None):
        super().__init__(f"{resource} not found", _identified("identifier", identifier))


class ResourceAlreadyExistsException(AppException):
    """Duplicate collaborator or duplicate pending invite."""

    http_status = status.HTTP_409_CONFLICT
    error_code = "resource_already_exists"

    def __init__(self, resource: str, field: Optional[str] = None):
        super().__init__(f"{resource} already exists", _identified("field", field))


class InvalidStateException(AppException):
    """The collaboration's current state forbids the operation."""

    http_status = status.HTTP_409_CONFLICT
    error_code = "invalid_state"


class ConcurrentModificationException(AppException):
    """Another request committed a newer revision of the same aggregate."""

    http_status = status.HTTP_409_CONFLICT
    error_code = "concurrent_modification"

    def __init__(self, resource: str, identifier: Optional[Any] = None):
        super().__init__(
            f"{resource} was modified by another request; reload and retry",
            _identified("identifier", identifier),
        )


class MaxLimitExceededException(AppException):
    http_status = status.HTTP_409_CONFLICT
    error_code = "max_limit_exceeded"

    def __init__(self, resource: str, max_limit: int):
        super().__init__(
            f"Maximum number of {resource} exceeded", {"max_limit": max_limit}
        )


# ==================== Domain validation ====================


class ValidationException(AppException):
    """Input that passed schema validation but breaks a domain rule."""

    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_code = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, _identified("field", field))
