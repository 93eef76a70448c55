"""XS2A transaction page retrieval."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from multibank.domain.banking.exceptions import ProtocolError
from multibank.infrastructure.banking.pagination import (
    PageFetcher,
    PaginationCursor,
    TransactionPage,
)
from multibank.infrastructure.banking.xs2a.mapper import (
    to_balance,
    to_transaction_page,
)
from multibank.infrastructure.banking.xs2a.report_parser import is_raw_report

if TYPE_CHECKING:
    from multibank.domain.banking.value_objects import Balance
    from multibank.infrastructure.banking.pagination import Continuation
    from multibank.infrastructure.banking.rest_client import BankingRestClient
    from multibank.infrastructure.banking.xs2a.report_parser import (
        TransactionReportParser,
    )

MAPPING_ERRORS = (KeyError, TypeError, ValueError, ArithmeticError)


def xs2a_headers(
    bank_code: str,
    consent_id: Optional[str] = None,
    session_data: Optional[dict[str, Any]] = None,
) -> dict[str, str]:
    """Request headers for the XS2A adapter service.

    ``session_data["headers"]`` carries extra gateway session headers
    (e.g. PSU-IP-Address) and is passed through unchanged.
    """
    headers = {"X-GTW-Bank-Code": bank_code}
    if consent_id:
        headers["Consent-ID"] = consent_id
    headers.update((session_data or {}).get("headers") or {})
    return headers


async def fetch_balances(
    client: BankingRestClient,
    resource_id: str,
    headers: dict[str, str],
) -> list[Balance]:
    response = await client.get(
        f"/v1/accounts/{resource_id}/balances",
        headers=headers,
    )
    body = client.json(response)
    try:
        return [to_balance(b) for b in body.get("balances") or []]
    except MAPPING_ERRORS as e:
        msg = f"Malformed balances report: {e}"
        raise ProtocolError(msg) from e


class Xs2aPageFetcher(PageFetcher):
    """Fetches transaction pages and balances from the XS2A adapter service."""

    def __init__(
        self,
        client: BankingRestClient,
        report_parser: Optional[TransactionReportParser] = None,
    ):
        self._client = client
        self._report_parser = report_parser

    async def fetch_page(
        self,
        cursor: PaginationCursor,
        continuation: Optional[Continuation] = None,
    ) -> TransactionPage:
        response = await self._client.get(
            f"/v1/accounts/{cursor.resource_id}/transactions",
            params=cursor.query_params(continuation),
            headers=self._headers(cursor),
        )

        media_type = response.headers.get("content-type", "")
        if is_raw_report(media_type):
            if self._report_parser is None:
                msg = f"No parser configured for {media_type} transaction reports"
                raise ProtocolError(msg)
            return self._report_parser.parse(response.text, media_type)

        body = self._client.json(response)
        try:
            return to_transaction_page(body)
        except MAPPING_ERRORS as e:
            msg = f"Malformed transaction report: {e}"
            raise ProtocolError(msg) from e

    async def fetch_balances(
        self,
        cursor: PaginationCursor,
        account_id: str,
    ) -> list[Balance]:
        return await fetch_balances(self._client, account_id, self._headers(cursor))

    @staticmethod
    def _headers(cursor: PaginationCursor) -> dict[str, str]:
        return xs2a_headers(cursor.bank_code, cursor.consent_id, cursor.session_data)
