"""Inbound request models shared by every banking protocol adapter."""

from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from multibank.domain.banking.value_objects.bank_account import BankAccount
from multibank.domain.banking.value_objects.payment import BulkPayment, SinglePayment


class BankCredentials(BaseModel):
    """PSU login data passed through to the bank unchanged."""

    login: str = Field(..., min_length=1)
    pin: SecretStr
    customer_id: str | None = None
    endpoint: str | None = Field(default=None, description="FinTS server URL")

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)


class BankingRequest(BaseModel):
    """Fields every adapter operation receives.

    ``session_data`` is protocol-specific (XS2A gateway session, aggregator
    access token, ...) and is handed through to the adapter untouched.
    """

    bank_code: str = Field(..., min_length=1)
    bank_api_bank_code: str | None = Field(
        default=None,
        description="Bank code the API expects if it differs from bank_code",
    )
    consent_id: str | None = None
    credentials: BankCredentials | None = None
    session_data: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @property
    def effective_bank_code(self) -> str:
        return self.bank_api_bank_code or self.bank_code


class AccountsRequest(BankingRequest):
    with_balance: bool = False


class AccountRequest(BankingRequest):
    account: BankAccount


class TransactionsRequest(AccountRequest):
    """``date_to`` defaults to today, ``date_from`` to the configured lookback."""

    date_from: date | None = None
    date_to: date | None = None
    with_balance: bool = False


class BalancesRequest(AccountRequest):
    pass


class StandingOrdersRequest(AccountRequest):
    pass


class PaymentRequest(BankingRequest):
    payment: SinglePayment | BulkPayment


class PsuAuthenticationRequest(BaseModel):
    """Authentication factor for the first SCA step."""

    psu_id: str | None = None
    password: SecretStr | None = None
    sca_method_id: str | None = Field(
        default=None,
        description="Preselected method for protocols that bundle methods",
    )

    model_config = ConfigDict(frozen=True)


class SelectScaMethodRequest(BaseModel):
    sca_method_id: str = Field(..., min_length=1)

    model_config = ConfigDict(frozen=True)


class TransactionAuthorisationRequest(BaseModel):
    """Challenge response (TAN / OTP). Empty for app-based approval."""

    sca_authentication_data: str | None = None

    model_config = ConfigDict(frozen=True)
