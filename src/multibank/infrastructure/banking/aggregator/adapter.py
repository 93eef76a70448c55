"""Aggregator adapter for finAPI-style account aggregation services.

The aggregator keeps its own copy of the user's bank data and is queried
with an OAuth access token; it never exposes an SCA dialog and cannot
initiate payments.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import TYPE_CHECKING, Optional

from multibank.domain.banking.exceptions import (
    InvalidAccountReferenceError,
    ProtocolError,
)
from multibank.domain.banking.ports import BankingProtocolAdapter
from multibank.domain.banking.value_objects import (
    AccountInformationResponse,
    BalancesReport,
    BalancesResponse,
    BankApi,
    Capability,
    StandingOrdersResponse,
)
from multibank.infrastructure.banking.aggregator.mapper import (
    to_bank_accounts,
    to_standing_order,
)
from multibank.infrastructure.banking.aggregator.page_fetcher import (
    ACCOUNTS_PATH,
    MAPPING_ERRORS,
    AggregatorPageFetcher,
    authorization_headers,
)
from multibank.infrastructure.banking.date_range import resolve_date_range
from multibank.infrastructure.banking.pagination import (
    PAGE,
    PaginationCursor,
    PaginationEngine,
)
from multibank.infrastructure.banking.rest_client import BankingRestClient
from multibank_config.settings import get_settings

if TYPE_CHECKING:
    from multibank.domain.banking.value_objects import (
        AccountRequest,
        AccountsRequest,
        BalancesRequest,
        BankAccount,
        BankingRequest,
        StandingOrdersRequest,
        TransactionsRequest,
        TransactionsResponse,
    )

logger = logging.getLogger(__name__)

STANDING_ORDERS_PATH = "/api/v1/standingOrders"


class AggregatorAdapter(BankingProtocolAdapter):
    """Account information through an aggregator REST API."""

    bank_api = BankApi.AGGREGATOR
    capabilities = frozenset(
        {
            Capability.DISCOVER_ACCOUNTS,
            Capability.LIST_TRANSACTIONS,
            Capability.LIST_BALANCES,
            Capability.LIST_STANDING_ORDERS,
        },
    )

    def __init__(
        self,
        client: Optional[BankingRestClient] = None,
        max_pages: Optional[int] = None,
    ):
        if client is None:
            settings = get_settings()
            client = BankingRestClient(
                base_url=settings.aggregator_url,
                timeout=settings.http_timeout,
            )
        self._client = client
        self._max_pages = max_pages

    async def close(self) -> None:
        await self._client.close()

    async def _discover_accounts(
        self,
        request: AccountsRequest,
    ) -> AccountInformationResponse:
        accounts = await self._fetch_accounts(request)
        logger.info("Discovered %d aggregator account(s)", len(accounts))
        return AccountInformationResponse(accounts=accounts)

    async def _list_transactions(
        self,
        request: TransactionsRequest,
        cancel_event: Optional[asyncio.Event],
    ) -> TransactionsResponse:
        account = await self._resolve_account(request)
        date_from, date_to = resolve_date_range(request.date_from, request.date_to)

        cursor = PaginationCursor(
            resource_id=account.external_ids[self.bank_api],
            bank_code=request.effective_bank_code,
            date_from=date_from,
            date_to=date_to,
            with_balance=request.with_balance,
            session_data=dict(request.session_data),
        )
        engine = PaginationEngine(
            AggregatorPageFetcher(self._client),
            schemes=(PAGE,),
            max_pages=self._max_pages,
        )
        response = await engine.fetch_all(cursor, cancel_event)
        return dataclasses.replace(response, account=account)

    async def _list_balances(self, request: BalancesRequest) -> BalancesResponse:
        account = await self._resolve_account(request)
        resource_id = account.external_ids[self.bank_api]
        cursor = PaginationCursor(
            resource_id=resource_id,
            bank_code=request.effective_bank_code,
            date_from=resolve_date_range(None, None)[0],
            session_data=dict(request.session_data),
        )
        balances = await AggregatorPageFetcher(self._client).fetch_balances(
            cursor,
            resource_id,
        )
        return BalancesResponse(
            balances_report=BalancesReport.from_balances(balances),
            account=account,
        )

    async def _list_standing_orders(
        self,
        request: StandingOrdersRequest,
    ) -> StandingOrdersResponse:
        account = await self._resolve_account(request)
        response = await self._client.get(
            STANDING_ORDERS_PATH,
            params={"accountIds": account.external_ids[self.bank_api]},
            headers=authorization_headers(request.session_data),
        )
        body = self._client.json(response)
        try:
            orders = [to_standing_order(o) for o in body.get("standingOrders") or []]
        except MAPPING_ERRORS as e:
            msg = f"Malformed standing order list: {e}"
            raise ProtocolError(msg) from e

        logger.info("Loaded %d standing order(s) for %s", len(orders), account.iban)
        return StandingOrdersResponse(standing_orders=orders)

    async def _fetch_accounts(self, request: BankingRequest) -> list[BankAccount]:
        response = await self._client.get(
            ACCOUNTS_PATH,
            headers=authorization_headers(request.session_data),
        )
        body = self._client.json(response)
        try:
            return to_bank_accounts(body)
        except MAPPING_ERRORS as e:
            msg = f"Malformed account list: {e}"
            raise ProtocolError(msg) from e

    async def _resolve_account(self, request: AccountRequest) -> BankAccount:
        account = request.account
        if account.external_id(self.bank_api):
            return account

        for candidate in await self._fetch_accounts(request):
            if candidate.iban == account.iban:
                return account.with_external_id(
                    self.bank_api,
                    candidate.external_ids[self.bank_api],
                )

        raise InvalidAccountReferenceError(account.iban)
