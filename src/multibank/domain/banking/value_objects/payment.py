"""Payment value objects."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from multibank.domain.shared.iban import normalize_iban

DEFAULT_PAYMENT_PRODUCT = "sepa-credit-transfers"


class SinglePayment(BaseModel):
    """SEPA single payment, optionally scheduled for a future date."""

    debtor_iban: str = Field(..., min_length=15, max_length=34)
    creditor_iban: str = Field(..., min_length=15, max_length=34)
    creditor_name: str = Field(..., min_length=1, max_length=70)
    creditor_bic: str | None = Field(default=None, max_length=11)
    amount: Decimal = Field(..., gt=0)
    currency: str = Field(default="EUR", max_length=3)
    purpose: str | None = Field(default=None, max_length=140)
    requested_execution_date: date | None = None
    payment_product: str = DEFAULT_PAYMENT_PRODUCT

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    @field_validator("debtor_iban", "creditor_iban")
    @classmethod
    def normalize(cls, v: str) -> str:
        return normalize_iban(v) or ""

    @property
    def is_future_payment(self) -> bool:
        return self.requested_execution_date is not None


class BulkPayment(BaseModel):
    """Several SEPA payments from one debtor account, authorised by one SCA.

    All payments share the debtor account and the execution date; the bank
    receives them as one bulk with the date on the bulk itself.
    ``batch_booking`` asks the bank to book the bulk as a single entry on
    the debtor's statement; None leaves it to the bank.
    """

    payments: list[SinglePayment] = Field(..., min_length=1)
    batch_booking: bool | None = None
    payment_product: str = DEFAULT_PAYMENT_PRODUCT

    model_config = ConfigDict(frozen=True)

    @field_validator("payments")
    @classmethod
    def check_common_debtor(cls, v: list[SinglePayment]) -> list[SinglePayment]:
        first = v[0]
        for payment in v[1:]:
            if payment.debtor_iban != first.debtor_iban:
                msg = "all payments of a bulk must share the debtor account"
                raise ValueError(msg)
            if payment.requested_execution_date != first.requested_execution_date:
                msg = "all payments of a bulk must share the execution date"
                raise ValueError(msg)
        return v

    @property
    def debtor_iban(self) -> str:
        return self.payments[0].debtor_iban

    @property
    def requested_execution_date(self) -> date | None:
        return self.payments[0].requested_execution_date

    @property
    def total_amount(self) -> Decimal:
        return sum((p.amount for p in self.payments), Decimal(0))
