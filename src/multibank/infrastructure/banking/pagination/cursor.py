"""Pagination cursor, page shape and the page fetcher port."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from multibank.domain.banking.value_objects import Balance, Booking
    from multibank.infrastructure.banking.pagination.continuation import Continuation


@dataclass(frozen=True)
class PaginationCursor:
    """Parameters needed to replay a transaction fetch for the next page.

    Lives for one aggregated fetch only and is never persisted.
    """

    resource_id: str
    bank_code: str
    date_from: date
    date_to: Optional[date] = None
    consent_id: Optional[str] = None
    with_balance: bool = False
    session_data: dict[str, Any] = field(default_factory=dict)

    def query_params(self, continuation: Optional[Continuation] = None) -> dict:
        """Query parameters for the first page or a continuation call."""
        params: dict[str, str] = {
            "bookingStatus": "booked",
            "withBalance": "true" if self.with_balance else "false",
        }

        if continuation is None or continuation.scheme.replay_date_range:
            params["dateFrom"] = self.date_from.isoformat()
            if self.date_to is not None:
                params["dateTo"] = self.date_to.isoformat()

        if continuation is not None:
            params[continuation.scheme.query_parameter] = continuation.token

        return params


@dataclass(frozen=True)
class TransactionPage:
    """One parsed page of a transaction report.

    ``balances`` is None when the page has no balances section at all,
    which is different from an empty list.
    """

    bookings: list[Booking]
    balances: Optional[list[Balance]] = None
    links: dict[str, str] = field(default_factory=dict)

    @property
    def next_link(self) -> Optional[str]:
        return self.links.get("next")

    @property
    def balances_link(self) -> Optional[str]:
        return self.links.get("balances")


class PageFetcher(ABC):
    """Protocol-specific page retrieval used by the PaginationEngine."""

    @abstractmethod
    async def fetch_page(
        self,
        cursor: PaginationCursor,
        continuation: Optional[Continuation] = None,
    ) -> TransactionPage:
        """Fetch the first page (no continuation) or a follow-up page."""

    @abstractmethod
    async def fetch_balances(
        self,
        cursor: PaginationCursor,
        account_id: str,
    ) -> list[Balance]:
        """Fetch the account's balances through the bank's balances endpoint."""
