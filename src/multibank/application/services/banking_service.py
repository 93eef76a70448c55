"""Single entry point for account information, payments and SCA."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Optional, TypeVar

from multibank.domain.banking.services import ScaAuthorisationStateMachine
from multibank.domain.banking.value_objects import BankApi, BankingRequest

if TYPE_CHECKING:
    import asyncio

    from multibank.domain.banking.entities import ConsentAuthorisation
    from multibank.domain.banking.ports import (
        BankingProtocolAdapter,
        BankInfo,
    )
    from multibank.domain.banking.value_objects import (
        AccountInformationResponse,
        AccountsRequest,
        BalancesRequest,
        BalancesResponse,
        PaymentRequest,
        PaymentResponse,
        PsuAuthenticationRequest,
        SelectScaMethodRequest,
        StandingOrdersRequest,
        StandingOrdersResponse,
        TransactionAuthorisationRequest,
        TransactionsRequest,
        TransactionsResponse,
        UpdateAuthResponse,
    )
    from multibank.infrastructure.banking import AdapterRegistry

logger = logging.getLogger(__name__)

RequestT = TypeVar("RequestT", bound=BankingRequest)


class BankingService:
    """
    Route banking operations to the adapter that serves the bank.

    The service looks the bank up in the directory, picks the adapter and
    completes the request with what the directory knows (the bank code the
    API expects, the FinTS server URL) before delegating. Errors raised by
    adapters pass through unchanged.
    """

    def __init__(self, registry: AdapterRegistry):
        self._registry = registry

    @classmethod
    def from_settings(
        cls,
        adapters: Optional[Iterable[BankingProtocolAdapter]] = None,
    ) -> BankingService:
        """Build the service over the CSV bank directory and all adapters."""
        from multibank.infrastructure.banking import (  # NOQA: PLC0415
            AdapterRegistry,
            CsvBankDirectory,
        )
        from multibank.infrastructure.banking.aggregator import (  # NOQA: PLC0415
            AggregatorAdapter,
        )
        from multibank.infrastructure.banking.fints import (  # NOQA: PLC0415
            FinTSAdapter,
        )
        from multibank.infrastructure.banking.xs2a import (  # NOQA: PLC0415
            Xs2aAdapter,
        )

        if adapters is None:
            adapters = [FinTSAdapter(), Xs2aAdapter(), AggregatorAdapter()]
        return cls(AdapterRegistry(adapters, CsvBankDirectory()))

    # ------------------------------------------------------------------
    # Account information
    # ------------------------------------------------------------------

    async def load_accounts(
        self,
        request: AccountsRequest,
        preferred_api: Optional[BankApi] = None,
    ) -> AccountInformationResponse:
        adapter, request = self._route(request, preferred_api)
        response = await adapter.discover_accounts(request)
        logger.info(
            "Loaded %d account(s) for bank %s via %s",
            len(response.accounts),
            request.bank_code,
            adapter.bank_api.value,
        )
        return response

    async def load_transactions(
        self,
        request: TransactionsRequest,
        preferred_api: Optional[BankApi] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> TransactionsResponse:
        adapter, request = self._route(request, preferred_api)
        response = await adapter.list_transactions(request, cancel_event)
        logger.info(
            "Loaded %d booking(s) for %s via %s",
            len(response.bookings),
            request.account.iban,
            adapter.bank_api.value,
        )
        return response

    async def load_balances(
        self,
        request: BalancesRequest,
        preferred_api: Optional[BankApi] = None,
    ) -> BalancesResponse:
        adapter, request = self._route(request, preferred_api)
        return await adapter.list_balances(request)

    async def load_standing_orders(
        self,
        request: StandingOrdersRequest,
        preferred_api: Optional[BankApi] = None,
    ) -> StandingOrdersResponse:
        adapter, request = self._route(request, preferred_api)
        return await adapter.list_standing_orders(request)

    async def execute_payment(
        self,
        request: PaymentRequest,
        preferred_api: Optional[BankApi] = None,
    ) -> PaymentResponse:
        adapter, request = self._route(request, preferred_api)
        response = await adapter.execute_payment(request)
        logger.info(
            "Payment %s initiated via %s (status %s, SCA required: %s)",
            response.payment_id,
            adapter.bank_api.value,
            response.transaction_status,
            response.requires_sca,
        )
        return response

    # ------------------------------------------------------------------
    # Strong customer authentication
    # ------------------------------------------------------------------

    async def start_authorisation(
        self,
        consent_id: str,
        request: BankingRequest,
        preferred_api: Optional[BankApi] = None,
    ) -> UpdateAuthResponse:
        """
        Open an SCA dialog for ``consent_id`` and report its status.

        Callers that need the ConsentAuthorisation itself to continue the
        dialog use ``start_flow``.
        """
        machine = await self.start_flow(consent_id, request, preferred_api)
        return machine.get_authorisation_status()

    async def start_flow(
        self,
        consent_id: str,
        request: BankingRequest,
        preferred_api: Optional[BankApi] = None,
    ) -> ScaAuthorisationStateMachine:
        adapter, request = self._route(request, preferred_api)
        return await ScaAuthorisationStateMachine.start(adapter, consent_id, request)

    def authorisation_flow(
        self,
        authorisation: ConsentAuthorisation,
    ) -> ScaAuthorisationStateMachine:
        """State machine continuing ``authorisation`` with its own adapter."""
        adapter = self._registry.adapter_for(authorisation.bank_api)
        return ScaAuthorisationStateMachine.for_adapter(adapter, authorisation)

    async def update_psu_authentication(
        self,
        authorisation: ConsentAuthorisation,
        request: PsuAuthenticationRequest,
    ) -> UpdateAuthResponse:
        flow = self.authorisation_flow(authorisation)
        return await flow.update_psu_authentication(request)

    async def select_psu_authentication_method(
        self,
        authorisation: ConsentAuthorisation,
        request: SelectScaMethodRequest,
    ) -> UpdateAuthResponse:
        flow = self.authorisation_flow(authorisation)
        return await flow.select_psu_authentication_method(request)

    async def authorise_transaction(
        self,
        authorisation: ConsentAuthorisation,
        request: TransactionAuthorisationRequest,
    ) -> UpdateAuthResponse:
        flow = self.authorisation_flow(authorisation)
        return await flow.authorise_transaction(request)

    def get_authorisation_status(
        self,
        authorisation: ConsentAuthorisation,
    ) -> UpdateAuthResponse:
        return self.authorisation_flow(authorisation).get_authorisation_status()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _route(
        self,
        request: RequestT,
        preferred_api: Optional[BankApi],
    ) -> tuple[BankingProtocolAdapter, RequestT]:
        adapter = self._registry.resolve(request.bank_code, preferred_api)
        bank = self._registry.bank_info(request.bank_code)
        return adapter, self._complete_request(request, bank, adapter.bank_api)

    @staticmethod
    def _complete_request(
        request: RequestT,
        bank: BankInfo,
        bank_api: BankApi,
    ) -> RequestT:
        update: dict = {}
        if (
            bank_api == BankApi.XS2A
            and request.bank_api_bank_code is None
            and bank.bank_api_bank_code
        ):
            update["bank_api_bank_code"] = bank.bank_api_bank_code

        credentials = request.credentials
        if (
            bank_api == BankApi.FINTS
            and credentials is not None
            and not credentials.endpoint
            and bank.fints_url
        ):
            update["credentials"] = credentials.model_copy(
                update={"endpoint": bank.fints_url},
            )

        if not update:
            return request
        return request.model_copy(update=update)
