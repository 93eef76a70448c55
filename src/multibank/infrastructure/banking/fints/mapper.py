"""Translation of geldstrom data structures into the domain model."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Optional

from multibank.domain.banking.value_objects import (
    Balance,
    BalanceType,
    BankAccount,
    BankApi,
    Booking,
    ScaMethod,
    ScaMethodType,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

# geldstrom TAN method types
_METHOD_TYPES = {
    "decoupled": ScaMethodType.DECOUPLED,
    "push": ScaMethodType.PUSH_OTP,
    "sms": ScaMethodType.SMS_OTP,
    "chiptan": ScaMethodType.CHIP_OTP,
    "photo_tan": ScaMethodType.PHOTO_OTP,
    "manual": ScaMethodType.MANUAL,
}


def to_bank_account(account: Any) -> BankAccount:
    # BIC validation - ensure it's valid length
    bic = account.bic
    if bic and len(bic) > 11:
        bic = None

    return BankAccount(
        iban=account.iban,
        currency=account.currency or "EUR",
        name=account.product_name,
        owner_name=account.owner.name if account.owner else None,
        product=account.product_name,
        bic=bic,
        external_ids={BankApi.FINTS: account.account_id},
    )


def to_bank_accounts(accounts: Sequence[Any]) -> list[BankAccount]:
    result = []
    for account in accounts:
        if not account.iban:
            logger.warning("Skipping account %s without IBAN", account.account_id)
            continue
        try:
            result.append(to_bank_account(account))
        except Exception as e:  # NOQA: PERF203
            logger.warning(
                "Failed to map account %s: %s. Skipping.",
                account.account_id,
                e,
            )
    return result


def to_booking(entry: Any) -> Booking:
    return Booking(
        amount=entry.amount,
        currency=entry.currency or "EUR",
        booking_date=entry.booking_date,
        value_date=entry.value_date,
        counterparty_iban=entry.counterpart_iban,
        counterparty_name=entry.counterpart_name,
        purpose=entry.purpose,
        external_id=entry.entry_id,
        stable_id=bool(entry.entry_id),
    )


def to_bookings(entries: Sequence[Any]) -> list[Booking]:
    bookings = []
    for entry in entries:
        try:
            bookings.append(to_booking(entry))
        except Exception as e:  # NOQA: PERF203
            logger.warning(
                "Failed to map transaction %s: %s. Skipping.",
                entry.entry_id,
                e,
            )
    return bookings


def to_closing_balance(snapshot: Any, currency: str) -> Balance:
    as_of = snapshot.as_of
    reference_date: Optional[date] = (
        as_of.date() if isinstance(as_of, datetime) else as_of
    )
    return Balance(
        amount=snapshot.booked.amount,
        currency=getattr(snapshot.booked, "currency", None) or currency,
        balance_type=BalanceType.CLOSING_BOOKED,
        reference_date=reference_date,
    )


def to_sca_method(method: Any) -> ScaMethod:
    method_type_value = getattr(method.method_type, "value", method.method_type)
    method_type = _METHOD_TYPES.get(method_type_value, ScaMethodType.UNKNOWN)

    return ScaMethod(
        id=method.code,
        name=method.name,
        method_type=method_type,
        is_decoupled=bool(method.is_decoupled),
        max_tan_length=method.max_tan_length,
    )
