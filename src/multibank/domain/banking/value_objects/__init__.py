"""Value objects for banking domain."""

from multibank.domain.banking.value_objects.balance import (
    Balance,
    BalancesReport,
    BalanceType,
)
from multibank.domain.banking.value_objects.bank_account import BankAccount
from multibank.domain.banking.value_objects.bank_api import BankApi, Capability
from multibank.domain.banking.value_objects.booking import Booking
from multibank.domain.banking.value_objects.payment import BulkPayment, SinglePayment
from multibank.domain.banking.value_objects.requests import (
    AccountRequest,
    AccountsRequest,
    BalancesRequest,
    BankCredentials,
    BankingRequest,
    PaymentRequest,
    PsuAuthenticationRequest,
    SelectScaMethodRequest,
    StandingOrdersRequest,
    TransactionAuthorisationRequest,
    TransactionsRequest,
)
from multibank.domain.banking.value_objects.responses import (
    AccountInformationResponse,
    BalancesResponse,
    PaymentResponse,
    StandingOrdersResponse,
    TransactionsResponse,
    UpdateAuthResponse,
)
from multibank.domain.banking.value_objects.sca import (
    ScaChallenge,
    ScaMethod,
    ScaMethodType,
    ScaStatus,
    ScaStepResult,
)
from multibank.domain.banking.value_objects.standing_order import Cycle, StandingOrder

__all__ = [
    "AccountInformationResponse",
    "AccountRequest",
    "AccountsRequest",
    "Balance",
    "BalanceType",
    "BalancesReport",
    "BalancesRequest",
    "BalancesResponse",
    "BankAccount",
    "BankApi",
    "BankCredentials",
    "BankingRequest",
    "Booking",
    "BulkPayment",
    "Capability",
    "Cycle",
    "PaymentRequest",
    "PaymentResponse",
    "PsuAuthenticationRequest",
    "ScaChallenge",
    "ScaMethod",
    "ScaMethodType",
    "ScaStatus",
    "ScaStepResult",
    "SelectScaMethodRequest",
    "SinglePayment",
    "StandingOrder",
    "StandingOrdersRequest",
    "StandingOrdersResponse",
    "TransactionAuthorisationRequest",
    "TransactionsRequest",
    "TransactionsResponse",
    "UpdateAuthResponse",
]
