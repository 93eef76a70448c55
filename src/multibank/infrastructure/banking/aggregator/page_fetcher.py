"""Aggregator transaction page retrieval."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from multibank.domain.banking.exceptions import (
    ConsentRequiredError,
    ProtocolError,
)
from multibank.infrastructure.banking.aggregator.mapper import (
    next_page,
    to_balance,
    to_booking,
)
from multibank.infrastructure.banking.pagination import (
    PAGE,
    PageFetcher,
    PaginationCursor,
    TransactionPage,
)

if TYPE_CHECKING:
    from multibank.domain.banking.value_objects import Balance
    from multibank.infrastructure.banking.pagination import Continuation
    from multibank.infrastructure.banking.rest_client import BankingRestClient

MAPPING_ERRORS = (KeyError, TypeError, ValueError, ArithmeticError)

ACCOUNTS_PATH = "/api/v1/accounts"
TRANSACTIONS_PATH = "/api/v1/transactions"
PER_PAGE = 500


def authorization_headers(session_data: dict[str, Any]) -> dict[str, str]:
    """Bearer header from the aggregator access token in ``session_data``."""
    token = session_data.get("access_token")
    if not token:
        msg = "No aggregator access token in session data"
        raise ConsentRequiredError(msg)
    return {"Authorization": f"Bearer {token}"}


class AggregatorPageFetcher(PageFetcher):
    """
    Fetches transaction pages from the aggregator.

    The aggregator reports ``paging.page``/``paging.pageCount`` instead of
    hypermedia links; the fetcher turns them into ``next`` links using the
    ``page`` continuation scheme, so the PaginationEngine treats it like
    any other REST bank. The pages carry no balances; the ``balances`` link
    points at the account resource, whose booked balance closes the report.
    """

    def __init__(self, client: BankingRestClient):
        self._client = client

    async def fetch_page(
        self,
        cursor: PaginationCursor,
        continuation: Optional[Continuation] = None,
    ) -> TransactionPage:
        page = int(continuation.token) if continuation is not None else 1
        params: dict[str, Any] = {
            "view": "userView",
            "accountIds": cursor.resource_id,
            "minBankBookingDate": cursor.date_from.isoformat(),
            "order": "bankBookingDate,desc",
            "page": page,
            "perPage": PER_PAGE,
        }
        if cursor.date_to is not None:
            params["maxBankBookingDate"] = cursor.date_to.isoformat()

        response = await self._client.get(
            TRANSACTIONS_PATH,
            params=params,
            headers=authorization_headers(cursor.session_data),
        )
        body = self._client.json(response)

        try:
            bookings = [to_booking(t) for t in body.get("transactions") or []]
            following = next_page(body.get("paging"))
        except MAPPING_ERRORS as e:
            msg = f"Malformed transaction page: {e}"
            raise ProtocolError(msg) from e

        links = {"balances": f"{ACCOUNTS_PATH}/{cursor.resource_id}"}
        if following is not None:
            links["next"] = f"{TRANSACTIONS_PATH}?{PAGE.query_parameter}={following}"

        return TransactionPage(bookings=bookings, balances=None, links=links)

    async def fetch_balances(
        self,
        cursor: PaginationCursor,
        account_id: str,
    ) -> list[Balance]:
        response = await self._client.get(
            f"{ACCOUNTS_PATH}/{account_id}",
            headers=authorization_headers(cursor.session_data),
        )
        body = self._client.json(response)
        try:
            balance = to_balance(body)
        except MAPPING_ERRORS as e:
            msg = f"Malformed account: {e}"
            raise ProtocolError(msg) from e
        return [balance] if balance is not None else []
