"""Pagination engine for multi-page transaction reports.

Some banks (e.g. Fiducia) don't deliver all transactions in one chunk.
Instead they deliver for example the first 150 transactions and provide a
"next" link which must be followed until all transactions are fetched.

The engine fetches pages lazily, folds them into one report, normalizes
the ordering and derives a running balance per booking. Missing balances
and mid-pagination failures degrade the result; they never fail the fetch.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from multibank.domain.banking.services import BookingReconciliationService
from multibank.domain.banking.value_objects import (
    Balance,
    BalancesReport,
    BalanceType,
    Booking,
    TransactionsResponse,
)
from multibank.infrastructure.banking.pagination.continuation import (
    DEFAULT_SCHEMES,
    ContinuationScheme,
    account_id_from_link,
    resolve_continuation,
)
from multibank_config.settings import get_settings

if TYPE_CHECKING:
    from multibank.infrastructure.banking.pagination.cursor import (
        PageFetcher,
        PaginationCursor,
        TransactionPage,
    )

logger = logging.getLogger(__name__)


@dataclass
class _ReportBuilder:
    """Accumulates pages of one aggregated fetch."""

    bookings: list[Booking] = field(default_factory=list)
    ready_balance: Optional[Balance] = None
    unready_balance: Optional[Balance] = None
    opening_balance: Optional[Balance] = None
    pages: int = 0

    def add_first(self, page: TransactionPage, balances: list[Balance]) -> None:
        self.pages += 1
        self.bookings.extend(page.bookings)
        for balance in balances:
            if balance.balance_type == BalanceType.EXPECTED:
                self.unready_balance = balance
            elif balance.balance_type == BalanceType.CLOSING_BOOKED:
                self.ready_balance = balance
            elif balance.balance_type == BalanceType.OPENING_BOOKED:
                self.opening_balance = balance

    def add_next(self, page: TransactionPage) -> None:
        self.pages += 1
        self.bookings.extend(page.bookings)
        for balance in page.balances or []:
            if balance.balance_type == BalanceType.CLOSING_BOOKED:
                self.ready_balance = balance

    def build(
        self,
        reconciliation: BookingReconciliationService,
    ) -> TransactionsResponse:
        bookings = reconciliation.reconcile(
            self.bookings,
            closing_booked=self.ready_balance,
            opening_booked=self.opening_balance,
        )
        return TransactionsResponse(
            bookings=bookings,
            balances_report=BalancesReport(
                ready_balance=self.ready_balance,
                unready_balance=self.unready_balance,
            ),
        )


class PaginationEngine:
    """
    Fetch and reconcile all pages of one account/date-range request.

    Pages are fetched strictly one after another: every continuation token
    comes from the previous response, and some banks require the follow-up
    call to repeat the original parameters exactly.

    Parameters
    ----------
    fetcher
        Protocol-specific page retrieval
    schemes
        Known continuation schemes, tried in order
    max_pages
        Hard cap on fetched pages including the first (default from settings)
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        schemes: Sequence[ContinuationScheme] = DEFAULT_SCHEMES,
        max_pages: Optional[int] = None,
        reconciliation: Optional[BookingReconciliationService] = None,
    ):
        self._fetcher = fetcher
        self._schemes = tuple(schemes)
        if max_pages is None:
            max_pages = get_settings().pagination_max_pages
        if max_pages < 1:
            msg = f"max_pages must be at least 1, got {max_pages}"
            raise ValueError(msg)
        self._max_pages = max_pages
        self._reconciliation = reconciliation or BookingReconciliationService()

    async def fetch_all(
        self,
        cursor: PaginationCursor,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> TransactionsResponse:
        """
        Fetch every page for ``cursor`` and return one reconciled report.

        Failures of the first page propagate. Failures of later pages stop
        pagination and return what was fetched so far.

        Parameters
        ----------
        cursor
            Request parameters replayed for every page
        cancel_event
            Checked between pages; once set, pagination stops early
        """
        builder = _ReportBuilder()

        async for page in self._pages(cursor, cancel_event):
            if builder.pages == 0:
                balances = page.balances
                if balances is None:
                    balances = await self._balances_from_link(
                        cursor,
                        page.balances_link,
                    )
                builder.add_first(page, balances or [])
            else:
                builder.add_next(page)

        logger.info(
            "Fetched %d booking(s) on %d page(s) for account %s",
            len(builder.bookings),
            builder.pages,
            cursor.resource_id,
        )
        return builder.build(self._reconciliation)

    async def _pages(
        self,
        cursor: PaginationCursor,
        cancel_event: Optional[asyncio.Event],
    ) -> AsyncIterator[TransactionPage]:
        page = await self._fetcher.fetch_page(cursor)
        fetched = 1
        yield page

        next_link = page.next_link
        while next_link:
            if fetched >= self._max_pages:
                logger.warning(
                    "Stopping pagination for account %s after %d pages",
                    cursor.resource_id,
                    fetched,
                )
                return

            if cancel_event is not None and cancel_event.is_set():
                logger.info(
                    "Pagination for account %s cancelled after %d pages",
                    cursor.resource_id,
                    fetched,
                )
                return

            continuation = resolve_continuation(next_link, self._schemes)
            if continuation is None:
                logger.warning("No known continuation scheme in link %s", next_link)
                return

            try:
                page = await self._fetcher.fetch_page(cursor, continuation)
            except Exception as e:
                logger.error(
                    "Error fetching page %d for account %s: %s. "
                    "Returning what was fetched so far.",
                    fetched + 1,
                    cursor.resource_id,
                    e,
                )
                return

            fetched += 1
            yield page
            next_link = page.next_link

    async def _balances_from_link(
        self,
        cursor: PaginationCursor,
        balances_link: Optional[str],
    ) -> Optional[list[Balance]]:
        if not balances_link:
            return None

        account_id = account_id_from_link(balances_link)
        if account_id is None:
            logger.error("Balances link without accounts: %s", balances_link)
            return None

        try:
            return await self._fetcher.fetch_balances(cursor, account_id)
        except Exception as e:
            logger.warning(
                "Could not fetch balances for account %s: %s",
                account_id,
                e,
            )
            return None
