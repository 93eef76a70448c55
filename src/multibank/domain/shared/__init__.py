"""Shared domain components.

This module exports shared exceptions and helpers used across the
banking domain and the adapters.
"""

from multibank.domain.shared.exceptions import (
    DomainException,
    EntityNotFoundError,
    ErrorCode,
)
from multibank.domain.shared.time import today_utc, utc_now

__all__ = [
    # Error codes
    "ErrorCode",
    # Base exception
    "DomainException",
    # Exception categories
    "EntityNotFoundError",
    # Utilities
    "today_utc",
    "utc_now",
]
