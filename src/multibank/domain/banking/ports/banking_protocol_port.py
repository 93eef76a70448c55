"""Uniform banking protocol adapter interface."""

from __future__ import annotations

from abc import ABC
from typing import TYPE_CHECKING, ClassVar

from multibank.domain.banking.exceptions import UnsupportedOperationError
from multibank.domain.banking.value_objects.bank_api import BankApi, Capability

if TYPE_CHECKING:
    import asyncio

    from multibank.domain.banking.ports.sca_dialog_port import ScaDialogPort
    from multibank.domain.banking.value_objects.requests import (
        AccountsRequest,
        BalancesRequest,
        PaymentRequest,
        StandingOrdersRequest,
        TransactionsRequest,
    )
    from multibank.domain.banking.value_objects.responses import (
        AccountInformationResponse,
        BalancesResponse,
        PaymentResponse,
        StandingOrdersResponse,
        TransactionsResponse,
    )


class BankingProtocolAdapter(ABC):
    """
    Interface every bank integration implements (FinTS, XS2A, aggregator).

    Each variant declares the capabilities it offers. The public operations
    check the capability first and only then call the variant's ``_``-hook,
    so an unsupported operation fails with UnsupportedOperationError without
    any transport call. Variants override only the hooks they support.

    Errors leaving an adapter are always subclasses of BankingError.
    """

    bank_api: ClassVar[BankApi]
    capabilities: ClassVar[frozenset[Capability]] = frozenset()

    # True if the bank delivers its SCA methods together with the
    # authentication challenge, so the explicit method selection step
    # never happens for this protocol.
    bundles_sca_methods: ClassVar[bool] = False

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def bank_supported(self, bank_code: str) -> bool:  # NOQA: ARG002
        """Whether this adapter can serve ``bank_code``."""
        return True

    async def discover_accounts(
        self,
        request: AccountsRequest,
    ) -> AccountInformationResponse:
        """
        Fetch all accounts accessible with the request's consent/credentials.

        Raises
        ------
        ResourceNotFoundError
            If the bank rejects the credential/consent
        ConsentRequiredError, ConsentAuthorisationRequiredError
            If access is gated by a missing or unauthorised consent
        """
        self._require(Capability.DISCOVER_ACCOUNTS)
        return await self._discover_accounts(request)

    async def list_transactions(
        self,
        request: TransactionsRequest,
        cancel_event: asyncio.Event | None = None,
    ) -> TransactionsResponse:
        """
        Fetch bookings newest-first with derived running balances.

        Parameters
        ----------
        request
            Account, date range and consent/credentials
        cancel_event
            Paginating adapters stop fetching further pages once it is set
            and return what they have so far
        """
        self._require(Capability.LIST_TRANSACTIONS)
        return await self._list_transactions(request, cancel_event)

    async def list_balances(self, request: BalancesRequest) -> BalancesResponse:
        self._require(Capability.LIST_BALANCES)
        return await self._list_balances(request)

    async def list_standing_orders(
        self,
        request: StandingOrdersRequest,
    ) -> StandingOrdersResponse:
        self._require(Capability.LIST_STANDING_ORDERS)
        return await self._list_standing_orders(request)

    async def execute_payment(self, request: PaymentRequest) -> PaymentResponse:
        """
        Initiate a single or bulk payment.

        Returns
        -------
        A PaymentResponse that is either complete or carries a pending
        ConsentAuthorisation to be driven by ScaAuthorisationStateMachine.
        """
        self._require(Capability.EXECUTE_PAYMENT)
        return await self._execute_payment(request)

    def sca_dialog(self) -> ScaDialogPort:
        """Bank-side SCA operations for this protocol."""
        self._require(Capability.STRONG_CUSTOMER_AUTHORISATION)
        return self._sca_dialog()

    # ------------------------------------------------------------------
    # Variant hooks
    # ------------------------------------------------------------------

    async def _discover_accounts(
        self,
        request: AccountsRequest,  # NOQA: ARG002
    ) -> AccountInformationResponse:
        raise self._unsupported(Capability.DISCOVER_ACCOUNTS)

    async def _list_transactions(
        self,
        request: TransactionsRequest,  # NOQA: ARG002
        cancel_event: asyncio.Event | None,  # NOQA: ARG002
    ) -> TransactionsResponse:
        raise self._unsupported(Capability.LIST_TRANSACTIONS)

    async def _list_balances(
        self,
        request: BalancesRequest,  # NOQA: ARG002
    ) -> BalancesResponse:
        raise self._unsupported(Capability.LIST_BALANCES)

    async def _list_standing_orders(
        self,
        request: StandingOrdersRequest,  # NOQA: ARG002
    ) -> StandingOrdersResponse:
        raise self._unsupported(Capability.LIST_STANDING_ORDERS)

    async def _execute_payment(
        self,
        request: PaymentRequest,  # NOQA: ARG002
    ) -> PaymentResponse:
        raise self._unsupported(Capability.EXECUTE_PAYMENT)

    def _sca_dialog(self) -> ScaDialogPort:
        raise self._unsupported(Capability.STRONG_CUSTOMER_AUTHORISATION)

    def _require(self, capability: Capability) -> None:
        if not self.supports(capability):
            raise self._unsupported(capability)

    def _unsupported(self, capability: Capability) -> UnsupportedOperationError:
        return UnsupportedOperationError(capability.value, self.bank_api.value)
