"""
Base exception classes for application-wide error handling.

Services report expected failures through ServiceResult. Exceptions are
kept for code paths that have no result to return, such as the WebSocket
handshake, where the failure must abort the connection before accept.

Exception Hierarchy:
    BaseApplicationError (base)
    └── AuthenticationError - Bad, missing or expired credential (401)

Usage:
    from core.exceptions import AuthenticationError

    raise AuthenticationError("Authentication token missing", error_code="TOKEN_MISSING")

    try:
        ...
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=e.status_code)

Note:
    The REST exception handler (core.exception_handler) renders these as
    {"success": false, "message": ..., "error_code": ...}.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (field errors, ids, etc.)
        status_code: HTTP status the REST layer responds with
    """

    default_error_code: str = "APPLICATION_ERROR"
    status_code: int = 400

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to the uniform error envelope.

        Returns:
            {"success": False, "message": ..., "error_code": ..., "details"?: ...}
        """
        result: dict[str, Any] = {
            "success": False,
            "message": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class AuthenticationError(BaseApplicationError):
    """
    Raised when a credential is missing, malformed, expired, or resolves
    to no user.

    On the WebSocket path this refuses the connection before accept.
    """

    default_error_code: str = "AUTHENTICATION_FAILED"
    status_code: int = 401
