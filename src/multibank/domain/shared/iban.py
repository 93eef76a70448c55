"""IBAN normalization utilities."""

from __future__ import annotations


def normalize_iban(value: str | None) -> str | None:
    """Normalize an IBAN for comparisons between bank APIs.

    Banks report IBANs with or without grouping spaces and in mixed case;
    the normalized form has neither. Returns None for None or blank input.
    """
    if value is None:
        return None
    normalized = value.strip().replace(" ", "").upper()
    return normalized or None


def has_iban_prefix(iban: str) -> bool:
    """True if ``iban`` starts with a country code and two check digits."""
    return iban[:2].isalpha() and iban[2:4].isdigit()
