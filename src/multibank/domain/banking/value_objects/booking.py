"""Booking value object."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class Booking(BaseModel):
    """One ledger entry as delivered by a bank.

    ``balance`` is never supplied per booking by the REST banks; it is
    derived during reconciliation. ``external_id`` holds the bank's
    transaction id when ``stable_id`` is set, otherwise a composite key.
    """

    amount: Decimal = Field(..., description="Signed amount, debit < 0")
    currency: str = Field(default="EUR", max_length=3)
    booking_date: date | None = None
    value_date: date | None = None
    counterparty_iban: str | None = Field(default=None, max_length=34)
    counterparty_name: str | None = Field(default=None, max_length=255)
    purpose: str | None = None
    balance: Decimal | None = None
    external_id: str | None = None
    stable_id: bool = False

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
    )

    @field_serializer("amount", "balance")
    def serialize_decimal(self, value: Decimal | None) -> str | None:
        return str(value) if value is not None else None

    def fallback_external_id(self) -> str:
        """Composite key used when the bank supplies no stable id."""
        key = f"{self.value_date}_{self.amount}"
        if self.balance is not None:
            key = f"{key}_{self.balance}"
        return key

    def with_balance(self, balance: Decimal) -> "Booking":
        """Return a copy carrying ``balance`` and a refreshed fallback id."""
        return self.model_copy(update={"balance": balance}).with_fallback_id()

    def with_fallback_id(self) -> "Booking":
        """Return a copy keyed by the composite id unless the bank gave one."""
        if self.stable_id:
            return self
        return self.model_copy(update={"external_id": self.fallback_external_id()})

    def is_credit(self) -> bool:
        return self.amount > 0

    def __str__(self) -> str:
        direction = "+" if self.is_credit() else ""
        return (
            f"{self.booking_date}: {direction}{self.amount} {self.currency} "
            f"- {(self.purpose or '')[:50]}"
        )
