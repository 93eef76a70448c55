"""Banking domain exceptions.

This module defines the closed error taxonomy every banking protocol adapter
maps its transport failures onto. No bank-specific error type is allowed to
cross the adapter boundary; callers only ever see subclasses of
``BankingError``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from multibank.domain.shared.exceptions import (
    DomainException,
    EntityNotFoundError,
    ErrorCode,
)

if TYPE_CHECKING:
    from multibank.domain.banking.entities.consent_authorisation import (
        ConsentAuthorisation,
    )

# =============================================================================
# Base Banking Exception
# =============================================================================


class BankingError(DomainException):
    """Base exception for banking domain errors."""

    retryable: bool = False


# =============================================================================
# Consent Exceptions
# =============================================================================


class ConsentRequiredError(BankingError):
    """Raised when no usable consent exists; the caller must create one."""

    http_status = 400

    def __init__(
        self,
        message: str = "No valid consent exists for this bank access",
        messages: list[str] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=ErrorCode.CONSENT_REQUIRED,
            messages=messages,
        )


class ConsentAuthorisationRequiredError(BankingError):
    """Raised when a consent exists but still needs an SCA step."""

    http_status = 400

    def __init__(
        self,
        authorisation: ConsentAuthorisation,
        message: str = "Consent must be authorised before proceeding",
    ) -> None:
        super().__init__(
            message=message,
            code=ErrorCode.CONSENT_AUTHORISATION_REQUIRED,
            details={
                "consent_id": authorisation.consent_id,
                "authorisation_id": authorisation.authorisation_id,
                "sca_status": authorisation.sca_status.value,
            },
        )
        self.authorisation = authorisation


class InvalidConsentError(BankingError):
    """Raised when the bank rejects or rate-limits a consent."""

    http_status = 403

    def __init__(
        self,
        message: str = "Consent rejected by bank",
        reason: str | None = None,
        http_status: int | None = None,
        messages: list[str] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=ErrorCode.INVALID_CONSENT,
            details={"reason": reason} if reason else None,
            http_status=http_status,
            messages=messages,
        )
        self.reason = reason


# =============================================================================
# Authentication Exceptions
# =============================================================================


class InvalidPinError(BankingError):
    """Raised when the bank rejects the PIN or another authentication factor."""

    http_status = 401

    def __init__(
        self,
        message: str = "Bank authentication failed. Please check your credentials.",
        messages: list[str] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=ErrorCode.INVALID_PIN,
            messages=messages,
        )


# =============================================================================
# Resource Exceptions
# =============================================================================


class ResourceNotFoundError(EntityNotFoundError, BankingError):
    """Raised when a referenced account or resource does not exist at the bank."""

    def __init__(
        self,
        message: str = "Resource not found at bank",
        details: dict[str, Any] | None = None,
        messages: list[str] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=ErrorCode.RESOURCE_NOT_FOUND,
            details=details,
            messages=messages,
        )


class InvalidAccountReferenceError(BankingError):
    """Raised when an IBAN cannot be matched to a bank-side resource id."""

    http_status = 400

    def __init__(self, iban: str | None = None) -> None:
        msg = (
            f"Account '{iban}' is not known to the bank"
            if iban
            else "Account reference is not known to the bank"
        )
        super().__init__(
            message=msg,
            code=ErrorCode.INVALID_ACCOUNT_REFERENCE,
            details={"iban": iban} if iban else None,
        )


# =============================================================================
# Capability and State Exceptions
# =============================================================================


class UnsupportedOperationError(BankingError):
    """Raised when an adapter does not implement a capability.

    This is permanent: retrying against the same adapter never succeeds.
    """

    http_status = 501
    retryable = False

    def __init__(
        self,
        operation: str,
        bank_api: str | None = None,
        message: str | None = None,
    ) -> None:
        msg = message or (
            f"Operation '{operation}' is not supported by {bank_api}"
            if bank_api
            else f"Operation '{operation}' is not supported"
        )
        super().__init__(
            message=msg,
            code=ErrorCode.UNSUPPORTED_OPERATION,
            details={"operation": operation, "bank_api": bank_api},
        )
        self.operation = operation


class InvalidStateError(BankingError):
    """Raised when an operation is invoked from a state that forbids it."""

    http_status = 409

    def __init__(self, message: str, state: str | None = None) -> None:
        super().__init__(
            message=message,
            code=ErrorCode.INVALID_STATE,
            details={"state": state} if state else None,
        )


# =============================================================================
# Catch-all Exceptions
# =============================================================================


class ProtocolError(BankingError):
    """Raised for unexpected bank responses, transport or parsing failures."""

    http_status = 502

    def __init__(
        self,
        message: str = "Unexpected response from bank",
        http_status: int | None = None,
        messages: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=ErrorCode.PROTOCOL_ERROR,
            details=details,
            http_status=http_status,
            messages=messages,
        )


class InternalError(BankingError):
    """Raised for failures inside this system rather than at the bank."""

    http_status = 500

    def __init__(self, message: str = "Internal error") -> None:
        super().__init__(message=message, code=ErrorCode.INTERNAL_ERROR)
