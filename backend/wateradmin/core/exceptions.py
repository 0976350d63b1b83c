"""Custom exception classes for the application"""

from typing import Optional, Dict, Any


class BaseAPIException(Exception):
    """Base exception for all API errors"""

    error_code = "error"

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        if error_code:
            self.error_code = error_code
        super().__init__(self.message)


# Authentication Errors
class AuthenticationError(BaseAPIException):
    """Base authentication error"""
    error_code = "unauthorized"

    def __init__(self, message: str = "Authentication failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=401, details=details)


class InvalidCredentialsError(AuthenticationError):
    """Wrong email or password; never says which"""
    error_code = "invalid_credentials"

    def __init__(self):
        super().__init__("Invalid credentials")


class UnauthorizedError(AuthenticationError):
    """No authenticated user could be resolved from the request"""
    error_code = "unauthorized"

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class TokenInvalidError(AuthenticationError):
    """A credential was sent but no stored token matches it"""
    error_code = "invalid_token"

    def __init__(self):
        super().__init__("Invalid token")


class TokenExpiredError(AuthenticationError):
    """Token existed but has lapsed; it has been deleted"""
    error_code = "token_expired"

    def __init__(self, expired_at: Optional[str] = None):
        super().__init__(
            "Token has expired. Please login again",
            details={"expired_at": expired_at},
        )


# Authorization Errors
class AuthorizationError(BaseAPIException):
    """Insufficient permissions"""
    error_code = "forbidden"

    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message, status_code=403)


# Resource Errors
class ResourceNotFoundError(BaseAPIException):
    """Resource not found"""
    error_code = "not_found"

    def __init__(self, resource: str):
        super().__init__(f"{resource} not found", status_code=404)


class ResourceAlreadyExistsError(BaseAPIException):
    """Resource already exists"""
    error_code = "conflict"

    def __init__(self, resource: str):
        super().__init__(f"{resource} already exists", status_code=409)


# Validation Errors
class ValidationError(BaseAPIException):
    """Validation error"""
    error_code = "validation_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=422, details=details)


# System Errors
class DatabaseError(BaseAPIException):
    """Database operation failed"""
    error_code = "database_error"

    def __init__(self, message: str = "Database operation failed"):
        super().__init__(message, status_code=500)


class SweepOperationError(DatabaseError):
    """Bulk token deletion failed part-way; already committed batches stay deleted"""
    error_code = "sweep_failed"

    def __init__(self, deleted: int, cause: Exception):
        super().__init__(f"Token sweep failed after deleting {deleted} tokens: {cause}")
        self.deleted = deleted
        self.details = {"deleted_tokens": deleted}
