"""Entities for banking domain."""

from multibank.domain.banking.entities.consent_authorisation import (
    ConsentAuthorisation,
)

__all__ = ["ConsentAuthorisation"]
