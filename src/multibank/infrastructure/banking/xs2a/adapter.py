"""PSD2 / XS2A adapter - Anti-Corruption Layer for the XS2A adapter service.

Talks Berlin Group NextGenPSD2 JSON to an XS2A adapter service that routes
each call to the bank named in the ``X-GTW-Bank-Code`` header.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Optional, Sequence, TypeVar

from multibank.domain.banking.exceptions import (
    BankingError,
    ConsentAuthorisationRequiredError,
    InvalidAccountReferenceError,
    InvalidConsentError,
    ProtocolError,
)
from multibank.domain.banking.ports import BankingProtocolAdapter
from multibank.domain.banking.value_objects import (
    AccountInformationResponse,
    BalancesReport,
    BalancesResponse,
    BankAccount,
    BankApi,
    BulkPayment,
    Capability,
    PaymentResponse,
)
from multibank.infrastructure.banking.date_range import resolve_date_range
from multibank.infrastructure.banking.pagination import (
    DEFAULT_SCHEMES,
    ContinuationScheme,
    PaginationCursor,
    PaginationEngine,
)
from multibank.infrastructure.banking.rest_client import (
    CONSENT_INVALID,
    BankingRestClient,
)
from multibank.infrastructure.banking.xs2a.mapper import (
    to_bank_accounts,
    to_bulk_payment_body,
    to_payment_body,
)
from multibank.infrastructure.banking.xs2a.page_fetcher import (
    MAPPING_ERRORS,
    Xs2aPageFetcher,
    fetch_balances,
    xs2a_headers,
)
from multibank.infrastructure.banking.xs2a.sca_dialog import (
    RESOURCE_PATH,
    Xs2aScaDialog,
)
from multibank_config.settings import get_settings

if TYPE_CHECKING:
    from multibank.domain.banking.entities import ConsentAuthorisation
    from multibank.domain.banking.ports import ScaDialogPort
    from multibank.domain.banking.value_objects import (
        AccountRequest,
        AccountsRequest,
        BalancesRequest,
        BankingRequest,
        PaymentRequest,
        TransactionsRequest,
        TransactionsResponse,
    )
    from multibank.infrastructure.banking.xs2a.report_parser import (
        TransactionReportParser,
    )

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Links the bank sets on a payment initiation response when SCA is needed
_START_AUTHORISATION_LINKS = (
    "startAuthorisation",
    "startAuthorisationWithPsuIdentification",
    "startAuthorisationWithPsuAuthentication",
    "startAuthorisationWithAuthenticationMethodSelection",
)

# Consent statuses of a consent that exists but still awaits SCA
_UNAUTHORISED_CONSENT_STATUSES = frozenset({"received", "partiallyAuthorised"})


class Xs2aAdapter(BankingProtocolAdapter):
    """
    XS2A Adapter - Anti-Corruption Layer.

    Responsibilities:
    1. Implement the BankingProtocolAdapter capabilities XS2A offers
    2. Resolve the bank-side resource id of an account from its IBAN
    3. Drive transaction listing through the PaginationEngine
    4. Translate HTTP failures into the banking error taxonomy
    """

    bank_api = BankApi.XS2A
    capabilities = frozenset(
        {
            Capability.DISCOVER_ACCOUNTS,
            Capability.LIST_TRANSACTIONS,
            Capability.LIST_BALANCES,
            Capability.EXECUTE_PAYMENT,
            Capability.STRONG_CUSTOMER_AUTHORISATION,
        },
    )
    bundles_sca_methods = False

    def __init__(
        self,
        client: Optional[BankingRestClient] = None,
        report_parser: Optional[TransactionReportParser] = None,
        schemes: Sequence[ContinuationScheme] = DEFAULT_SCHEMES,
        max_pages: Optional[int] = None,
    ):
        if client is None:
            settings = get_settings()
            client = BankingRestClient(
                base_url=settings.xs2a_adapter_url,
                timeout=settings.http_timeout,
            )
        self._client = client
        self._report_parser = report_parser
        self._schemes = tuple(schemes)
        self._max_pages = max_pages

    async def close(self) -> None:
        await self._client.close()

    # ------------------------------------------------------------------
    # Account information
    # ------------------------------------------------------------------

    async def _discover_accounts(
        self,
        request: AccountsRequest,
    ) -> AccountInformationResponse:
        accounts = await self._consent_checked(
            request,
            lambda: self._fetch_accounts(request, with_balance=request.with_balance),
        )
        logger.info(
            "Discovered %d XS2A account(s) for bank %s",
            len(accounts),
            request.effective_bank_code,
        )
        return AccountInformationResponse(accounts=accounts)

    async def _list_transactions(
        self,
        request: TransactionsRequest,
        cancel_event: Optional[asyncio.Event],
    ) -> TransactionsResponse:
        return await self._consent_checked(
            request,
            lambda: self._load_transactions(request, cancel_event),
        )

    async def _load_transactions(
        self,
        request: TransactionsRequest,
        cancel_event: Optional[asyncio.Event],
    ) -> TransactionsResponse:
        account = await self._resolve_account(request)
        date_from, date_to = resolve_date_range(request.date_from, request.date_to)

        logger.info(
            "Loading XS2A transactions for %s from %s to %s",
            account.iban,
            date_from,
            date_to,
        )

        cursor = PaginationCursor(
            resource_id=account.external_ids[self.bank_api],
            bank_code=request.effective_bank_code,
            date_from=date_from,
            date_to=date_to,
            consent_id=request.consent_id,
            with_balance=request.with_balance,
            session_data=dict(request.session_data),
        )
        engine = PaginationEngine(
            Xs2aPageFetcher(self._client, self._report_parser),
            schemes=self._schemes,
            max_pages=self._max_pages,
        )
        response = await engine.fetch_all(cursor, cancel_event)
        return dataclasses.replace(response, account=account)

    async def _list_balances(self, request: BalancesRequest) -> BalancesResponse:
        return await self._consent_checked(
            request,
            lambda: self._load_balances(request),
        )

    async def _load_balances(self, request: BalancesRequest) -> BalancesResponse:
        account = await self._resolve_account(request)
        balances = await fetch_balances(
            self._client,
            account.external_ids[self.bank_api],
            self._headers(request),
        )
        return BalancesResponse(
            balances_report=BalancesReport.from_balances(balances),
            account=account,
        )

    async def _fetch_accounts(
        self,
        request: BankingRequest,
        with_balance: bool = False,
    ) -> list[BankAccount]:
        response = await self._client.get(
            "/v1/accounts",
            params={"withBalance": "true" if with_balance else "false"},
            headers=self._headers(request),
        )
        body = self._client.json(response)
        try:
            return to_bank_accounts(body)
        except MAPPING_ERRORS as e:
            msg = f"Malformed account list: {e}"
            raise ProtocolError(msg) from e

    async def _resolve_account(self, request: AccountRequest) -> BankAccount:
        """Return the account with its XS2A resource id, looking it up by IBAN."""
        account = request.account
        if account.external_id(self.bank_api):
            return account

        for candidate in await self._fetch_accounts(request):
            if candidate.iban == account.iban:
                resource_id = candidate.external_id(self.bank_api)
                if resource_id:
                    return account.with_external_id(self.bank_api, resource_id)

        raise InvalidAccountReferenceError(account.iban)

    async def _consent_checked(
        self,
        request: BankingRequest,
        call: Callable[[], Awaitable[T]],
    ) -> T:
        """Run ``call``; turn a rejected but unauthorised consent into an SCA.

        Banks answer CONSENT_INVALID both for consents that are dead and for
        consents still waiting for the PSU's SCA. Only the consent status
        tells them apart.
        """
        try:
            return await call()
        except InvalidConsentError as e:
            if e.reason != CONSENT_INVALID or not request.consent_id:
                raise
            authorisation = await self._pending_consent_authorisation(request)
            if authorisation is None:
                raise
            raise ConsentAuthorisationRequiredError(authorisation) from e

    async def _pending_consent_authorisation(
        self,
        request: BankingRequest,
    ) -> Optional[ConsentAuthorisation]:
        """Start an authorisation if the consent still awaits SCA."""
        consent_id = request.consent_id
        try:
            response = await self._client.get(
                f"/v1/consents/{consent_id}/status",
                headers=xs2a_headers(
                    request.effective_bank_code,
                    session_data=request.session_data,
                ),
            )
            consent_status = self._client.json(response).get("consentStatus")
        except BankingError as e:
            logger.warning("Status lookup of consent %s failed: %s", consent_id, e)
            return None

        if consent_status not in _UNAUTHORISED_CONSENT_STATUSES:
            return None

        logger.info(
            "Consent %s is %s, starting its authorisation",
            consent_id,
            consent_status,
        )
        return await self._sca_dialog().start_authorisation(consent_id, request)

    @staticmethod
    def _headers(request: BankingRequest) -> dict[str, str]:
        return xs2a_headers(
            request.effective_bank_code,
            request.consent_id,
            request.session_data,
        )

    # ------------------------------------------------------------------
    # Payments and SCA
    # ------------------------------------------------------------------

    async def _execute_payment(self, request: PaymentRequest) -> PaymentResponse:
        payment = request.payment
        if isinstance(payment, BulkPayment):
            payment_service = "bulk-payments"
            payment_body = to_bulk_payment_body(payment)
        else:
            payment_service = "payments"
            payment_body = to_payment_body(payment)

        response = await self._client.post(
            f"/v1/{payment_service}/{payment.payment_product}",
            json=payment_body,
            headers=xs2a_headers(
                request.effective_bank_code,
                session_data=request.session_data,
            ),
        )
        body = self._client.json(response)

        payment_id = body.get("paymentId")
        transaction_status = body.get("transactionStatus") or "RCVD"
        logger.info(
            "Initiated %s %s %s with status %s",
            payment.payment_product,
            payment_service,
            payment_id,
            transaction_status,
        )

        links = body.get("_links") or {}
        needs_sca = any(name in links for name in _START_AUTHORISATION_LINKS)
        if not payment_id or not needs_sca:
            return PaymentResponse(
                payment_id=payment_id,
                transaction_status=transaction_status,
            )

        session_data = dict(request.session_data)
        session_data[RESOURCE_PATH] = (
            f"{payment_service}/{payment.payment_product}/{payment_id}"
        )
        try:
            authorisation = await self._sca_dialog().start_authorisation(
                payment_id,
                request.model_copy(update={"session_data": session_data}),
            )
        except BankingError as e:
            # The payment exists at the bank; its id lets the caller retry
            # the authorisation.
            logger.warning(
                "Starting authorisation of payment %s failed: %s",
                payment_id,
                e,
            )
            e.details.update(
                {
                    "payment_id": payment_id,
                    "transaction_status": transaction_status,
                    RESOURCE_PATH: session_data[RESOURCE_PATH],
                },
            )
            raise
        return PaymentResponse(
            payment_id=payment_id,
            transaction_status=transaction_status,
            authorisation=authorisation,
        )

    def _sca_dialog(self) -> ScaDialogPort:
        return Xs2aScaDialog(self._client)
