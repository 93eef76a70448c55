"""Mapping between aggregator (finAPI style) JSON and the domain model."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

from multibank.domain.banking.value_objects import (
    Balance,
    BalanceType,
    BankAccount,
    BankApi,
    Booking,
    Cycle,
    StandingOrder,
)

_CYCLES = {
    "WEEKLY": Cycle.WEEKLY,
    "MONTHLY": Cycle.MONTHLY,
    "QUARTERLY": Cycle.QUARTERLY,
    "HALF_YEARLY": Cycle.HALF_YEARLY,
    "YEARLY": Cycle.YEARLY,
}


def _parse_date(value: str | None) -> date | None:
    # Aggregators report dates as "2024-01-31" or "2024-01-31 00:00:00.000"
    return date.fromisoformat(value[:10]) if value else None


def to_bank_account(account: dict[str, Any]) -> BankAccount:
    return BankAccount(
        iban=account["iban"],
        currency=account.get("accountCurrency") or "EUR",
        name=account.get("accountName"),
        owner_name=account.get("accountHolderName"),
        product=account.get("accountType"),
        external_ids={BankApi.AGGREGATOR: str(account["id"])},
    )


def to_bank_accounts(body: dict[str, Any]) -> list[BankAccount]:
    return [to_bank_account(a) for a in body.get("accounts") or [] if a.get("iban")]


def to_booking(transaction: dict[str, Any]) -> Booking:
    transaction_id = transaction.get("id")
    return Booking(
        amount=Decimal(str(transaction["amount"])),
        currency=transaction.get("currency") or "EUR",
        booking_date=_parse_date(transaction.get("bankBookingDate")),
        value_date=_parse_date(transaction.get("valueDate")),
        counterparty_iban=transaction.get("counterpartIban"),
        counterparty_name=transaction.get("counterpartName"),
        purpose=transaction.get("purpose"),
        external_id=str(transaction_id) if transaction_id is not None else None,
        stable_id=transaction_id is not None,
    )


def to_balance(account: dict[str, Any]) -> Balance | None:
    """The aggregator reports one booked balance per account."""
    if account.get("balance") is None:
        return None
    return Balance(
        amount=Decimal(str(account["balance"])),
        currency=account.get("accountCurrency") or "EUR",
        balance_type=BalanceType.CLOSING_BOOKED,
        reference_date=_parse_date(account.get("lastSuccessfulUpdate")),
    )


def to_standing_order(order: dict[str, Any]) -> StandingOrder:
    order_id = order.get("id")
    return StandingOrder(
        order_id=str(order_id) if order_id is not None else None,
        amount=Decimal(str(order["amount"])),
        currency=order.get("currency") or "EUR",
        counterparty_iban=order.get("counterpartIban"),
        counterparty_name=order.get("counterpartName"),
        purpose=order.get("purpose"),
        cycle=_CYCLES.get(order.get("frequency") or "", Cycle.OTHER),
        first_execution_date=_parse_date(order.get("startDate")),
        last_execution_date=_parse_date(order.get("endDate")),
    )


def next_page(paging: dict[str, Any] | None) -> int | None:
    """Number of the following page, or None on the last page."""
    if not paging:
        return None
    page = int(paging.get("page") or 1)
    page_count = int(paging.get("pageCount") or page)
    return page + 1 if page < page_count else None
