"""Balance value objects."""

from datetime import date
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class BalanceType(str, Enum):
    """Berlin Group balance types (FinTS and aggregators map onto these)."""

    CLOSING_BOOKED = "closingBooked"
    EXPECTED = "expected"
    OPENING_BOOKED = "openingBooked"
    INTERIM_AVAILABLE = "interimAvailable"
    INTERIM_BOOKED = "interimBooked"
    FORWARD_AVAILABLE = "forwardAvailable"
    NON_INVOICED = "nonInvoiced"
    OTHER = "other"

    @classmethod
    def parse(cls, value: str | None) -> "BalanceType":
        for member in cls:
            if member.value == value:
                return member
        return cls.OTHER


class Balance(BaseModel):
    """One bank-reported balance."""

    amount: Decimal
    currency: str = Field(default="EUR", max_length=3)
    balance_type: BalanceType = BalanceType.CLOSING_BOOKED
    reference_date: date | None = None

    model_config = ConfigDict(frozen=True)

    @field_serializer("amount")
    def serialize_amount(self, value: Decimal) -> str:
        return str(value)


class BalancesReport(BaseModel):
    """At most one ready (closing booked) and one unready (expected) balance."""

    ready_balance: Balance | None = None
    unready_balance: Balance | None = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_balances(cls, balances: list[Balance]) -> "BalancesReport":
        """Pick the ready and unready balance out of a bank balance list.

        Later entries of the same kind replace earlier ones, other kinds
        are ignored.
        """
        ready = None
        unready = None
        for balance in balances:
            if balance.balance_type == BalanceType.CLOSING_BOOKED:
                ready = balance
            elif balance.balance_type == BalanceType.EXPECTED:
                unready = balance
        return cls(ready_balance=ready, unready_balance=unready)

    def with_ready_balance(self, balance: Balance) -> "BalancesReport":
        return self.model_copy(update={"ready_balance": balance})

    @property
    def is_empty(self) -> bool:
        return self.ready_balance is None and self.unready_balance is None
