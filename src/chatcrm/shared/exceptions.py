"""
Custom exception classes for the application.

Every exception carries the HTTP status it maps to; the app renders them as
``{"error": message, "details": ...}``.
"""

from typing import Any


class AppException(Exception):
    """Base exception for application errors."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "APP_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize application exception.

        Args:
            message: Human-readable error message.
            code: Machine-readable error code.
            details: Additional error details.
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class AuthenticationError(AppException):
    """Raised when the caller has no valid session."""

    status_code = 401

    def __init__(
        self,
        message: str = "Unauthorized",
        code: str = "AUTH_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class TokenExpiredError(AuthenticationError):
    """Raised when a token has expired."""

    def __init__(
        self,
        message: str = "Token has expired",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, "TOKEN_EXPIRED", details)


class InvalidTokenError(AuthenticationError):
    """Raised when a token is invalid."""

    def __init__(
        self,
        message: str = "Invalid token",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, "INVALID_TOKEN", details)


class ValidationError(AppException):
    """Raised when business validation fails (distinct from pydantic ValidationError)."""

    status_code = 400

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, "VALIDATION_ERROR", details)


class NotFoundError(AppException):
    """Raised when a row is absent or not owned by the caller."""

    status_code = 404

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, "NOT_FOUND", details)


class ConflictError(AppException):
    """Raised when a uniqueness constraint rejects a write."""

    status_code = 409

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, "CONFLICT", details)


class UnexpectedError(AppException):
    """Raised at a handler boundary for any other failure; message stays generic."""

    status_code = 500

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message, "INTERNAL_ERROR")
