"""Uniform outbound responses returned by every banking protocol adapter.

These are plain structured data; no protocol wire type ever appears here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from multibank.domain.banking.value_objects.balance import BalancesReport
from multibank.domain.banking.value_objects.bank_account import BankAccount
from multibank.domain.banking.value_objects.bank_api import BankApi
from multibank.domain.banking.value_objects.booking import Booking
from multibank.domain.banking.value_objects.sca import (
    ScaChallenge,
    ScaMethod,
    ScaStatus,
)
from multibank.domain.banking.value_objects.standing_order import StandingOrder

if TYPE_CHECKING:
    from multibank.domain.banking.entities.consent_authorisation import (
        ConsentAuthorisation,
    )


@dataclass(frozen=True)
class AccountInformationResponse:
    accounts: list[BankAccount]

    def to_dict(self) -> dict:
        return {"accounts": [a.model_dump(mode="json") for a in self.accounts]}


@dataclass(frozen=True)
class TransactionsResponse:
    """Bookings newest-first plus the balances known for the report.

    ``account`` is the requested account as the adapter resolved it, i.e.
    with the protocol's resource id added when it was looked up by IBAN.
    """

    bookings: list[Booking]
    balances_report: BalancesReport = field(default_factory=BalancesReport)
    account: Optional[BankAccount] = None

    def to_dict(self) -> dict:
        return {
            "bookings": [b.model_dump(mode="json") for b in self.bookings],
            "balances": self.balances_report.model_dump(mode="json"),
        }


@dataclass(frozen=True)
class BalancesResponse:
    balances_report: BalancesReport
    account: Optional[BankAccount] = None


@dataclass(frozen=True)
class StandingOrdersResponse:
    standing_orders: list[StandingOrder]


@dataclass(frozen=True)
class UpdateAuthResponse:
    """Outcome of one SCA step, or of a status query."""

    bank_api: BankApi
    sca_status: ScaStatus
    consent_id: str
    authorisation_id: str
    challenge: Optional[ScaChallenge] = None
    sca_methods: list[ScaMethod] = field(default_factory=list)
    selected_method: Optional[ScaMethod] = None
    psu_message: Optional[str] = None

    @classmethod
    def from_authorisation(
        cls,
        authorisation: ConsentAuthorisation,
    ) -> UpdateAuthResponse:
        return cls(
            bank_api=authorisation.bank_api,
            sca_status=authorisation.sca_status,
            consent_id=authorisation.consent_id,
            authorisation_id=authorisation.authorisation_id,
            challenge=authorisation.challenge,
            sca_methods=authorisation.sca_methods,
            selected_method=authorisation.selected_method,
            psu_message=authorisation.psu_message,
        )

    def to_dict(self) -> dict:
        return {
            "bank_api": self.bank_api.value,
            "sca_status": self.sca_status.value,
            "consent_id": self.consent_id,
            "authorisation_id": self.authorisation_id,
            "challenge": (
                self.challenge.model_dump(mode="json", exclude={"image"})
                if self.challenge
                else None
            ),
            "sca_methods": [m.model_dump(mode="json") for m in self.sca_methods],
            "selected_method": (
                self.selected_method.model_dump(mode="json")
                if self.selected_method
                else None
            ),
            "psu_message": self.psu_message,
        }


@dataclass(frozen=True)
class PaymentResponse:
    """A payment either completed or awaiting SCA via ``authorisation``."""

    payment_id: Optional[str]
    transaction_status: str
    authorisation: Optional[ConsentAuthorisation] = None

    @property
    def requires_sca(self) -> bool:
        return (
            self.authorisation is not None
            and not self.authorisation.sca_status.is_terminal
        )
