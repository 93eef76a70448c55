"""Standing order value object."""

from datetime import date
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Cycle(str, Enum):
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    HALF_YEARLY = "HALF_YEARLY"
    YEARLY = "YEARLY"
    OTHER = "OTHER"


class StandingOrder(BaseModel):
    """Recurring transfer set up at the bank."""

    order_id: str | None = None
    amount: Decimal
    currency: str = Field(default="EUR", max_length=3)
    counterparty_iban: str | None = None
    counterparty_name: str | None = None
    purpose: str | None = None
    cycle: Cycle = Cycle.MONTHLY
    first_execution_date: date | None = None
    last_execution_date: date | None = None

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)
