"""Shared domain exceptions and error codes.

This module defines the base exception hierarchy and error codes for the
entire domain layer. All domain exceptions should inherit from DomainException
so the calling boundary can render every failure the same way.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Stable error codes for API clients.

    These codes are part of the public contract. Should not be changed.
    """

    # Consent Errors (400/403/429)
    CONSENT_REQUIRED = "CONSENT_REQUIRED"
    CONSENT_AUTHORISATION_REQUIRED = "CONSENT_AUTHORISATION_REQUIRED"
    INVALID_CONSENT = "INVALID_CONSENT"

    # Authentication Errors (401)
    INVALID_PIN = "INVALID_PIN"

    # Not Found Errors (404)
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    INVALID_ACCOUNT_REFERENCE = "INVALID_ACCOUNT_REFERENCE"

    # State Errors (409)
    INVALID_STATE = "INVALID_STATE"

    # Capability Errors (501)
    UNSUPPORTED_OPERATION = "UNSUPPORTED_OPERATION"

    # Bank Errors (502)
    PROTOCOL_ERROR = "PROTOCOL_ERROR"

    # General Errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class DomainException(Exception):  # NOQA: N818
    """Base exception for all domain-related errors.

    Attributes
    ----------
    message
        Human-readable error message (safe for end users)
    code
        Stable error code for programmatic handling
    details
        Optional additional context (logged but not exposed to users)
    http_status
        HTTP-like status the calling boundary should answer with
    messages
        Additional human-readable messages, e.g. bank-supplied TPP messages
    """

    http_status: int = 500

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
        http_status: int | None = None,
        messages: list[str] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}
        if http_status is not None:
            self.http_status = http_status
        self.messages = list(messages or [])

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code.value!r}, "
            f"http_status={self.http_status!r}, "
            f"details={self.details!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "status": self.http_status,
            "message": self.message,
            "messages": self.messages,
        }


class EntityNotFoundError(DomainException):
    """Raised when a requested entity cannot be found."""

    http_status = 404

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.RESOURCE_NOT_FOUND,
        details: dict[str, Any] | None = None,
        http_status: int | None = None,
        messages: list[str] | None = None,
    ) -> None:
        super().__init__(message, code, details, http_status, messages)
