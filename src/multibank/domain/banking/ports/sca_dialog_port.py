"""Bank-side SCA dialog port interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from multibank.domain.banking.entities.consent_authorisation import (
        ConsentAuthorisation,
    )
    from multibank.domain.banking.value_objects.requests import (
        BankingRequest,
        PsuAuthenticationRequest,
        SelectScaMethodRequest,
        TransactionAuthorisationRequest,
    )
    from multibank.domain.banking.value_objects.sca import ScaStepResult


class ScaDialogPort(ABC):
    """
    The bank calls behind each SCA step.

    Implementations only talk to the bank and translate its answer into a
    ScaStepResult. Whether a step is allowed, and whether the reported
    status is a legal transition, is decided by ScaAuthorisationStateMachine.
    """

    @abstractmethod
    async def start_authorisation(
        self,
        consent_id: str,
        request: BankingRequest,
    ) -> ConsentAuthorisation:
        """Open an authorisation for ``consent_id`` in status STARTED."""

    @abstractmethod
    async def update_psu_authentication(
        self,
        authorisation: ConsentAuthorisation,
        request: PsuAuthenticationRequest,
    ) -> ScaStepResult:
        """Submit the PSU's credential or first authentication factor."""

    @abstractmethod
    async def select_psu_authentication_method(
        self,
        authorisation: ConsentAuthorisation,
        request: SelectScaMethodRequest,
    ) -> ScaStepResult:
        """Choose one of the SCA methods offered after authentication.

        Protocols that bundle the methods into the authentication challenge
        never reach this step.
        """

    @abstractmethod
    async def authorise_transaction(
        self,
        authorisation: ConsentAuthorisation,
        request: TransactionAuthorisationRequest,
    ) -> ScaStepResult:
        """Submit the challenge response (TAN, OTP, app approval)."""
