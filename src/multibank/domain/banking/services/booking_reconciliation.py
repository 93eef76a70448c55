"""Domain service reconciling bank bookings into one consistent report.

Banks deliver bookings in their own order and report only point balances
(closing booked, sometimes opening booked). This service turns that into
the uniform report shape:

1. Bookings are ordered newest-first, whatever the bank's native order.
2. Every booking gets a running balance, back-calculated from the closing
   booked balance: the newest booking carries the closing balance and each
   older booking carries the previous balance minus the newer booking's
   amount.
3. When the opening booked balance is known, the balance before the oldest
   booking is compared against it. A mismatch is a data-quality warning and
   never an error.

Formula: balance(b[i + 1]) = balance(b[i]) - amount(b[i])
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from multibank.domain.banking.value_objects import Balance, Booking

logger = logging.getLogger(__name__)


class BookingReconciliationService:
    """
    Ordering and running-balance derivation for transaction reports.

    Layer: Domain (pure business logic, no infrastructure dependencies)
    """

    def reconcile(
        self,
        bookings: list[Booking],
        closing_booked: Balance | None,
        opening_booked: Balance | None = None,
    ) -> list[Booking]:
        """Normalize order, derive balances and check the opening balance.

        Parameters
        ----------
        bookings
            Bookings as merged from all pages, in the bank's order
        closing_booked
            Closing booked balance of the report, if known
        opening_booked
            Opening booked balance of the report, if known

        Returns
        -------
        New list of bookings, newest-first. Without a closing balance the
        bookings are reordered and keyed but carry no balance.
        """
        ordered = self.normalize_order(bookings)
        if closing_booked is None:
            return [booking.with_fallback_id() for booking in ordered]

        with_balances = self.apply_running_balances(ordered, closing_booked.amount)
        if opening_booked is not None:
            self.check_opening_balance(with_balances, opening_booked.amount)
        return with_balances

    def normalize_order(self, bookings: list[Booking]) -> list[Booking]:
        """Return the bookings newest-first.

        If the first booking predates the last one the bank delivered
        oldest-first and the sequence is reversed as a whole. A stable
        descending sort afterwards repairs banks whose pages are not
        monotonic; for monotonic input it changes nothing.
        """
        ordered = list(bookings)
        if len(ordered) < 2:
            return ordered

        first = ordered[0].booking_date
        last = ordered[-1].booking_date
        if first is not None and last is not None and first < last:
            ordered.reverse()

        return sorted(
            ordered,
            key=lambda b: b.booking_date or date.min,
            reverse=True,
        )

    def apply_running_balances(
        self,
        bookings: list[Booking],
        closing_balance: Decimal,
    ) -> list[Booking]:
        """Assign each newest-first booking its balance after booking."""
        result = []
        balance = closing_balance
        for booking in bookings:
            result.append(booking.with_balance(balance))
            balance = balance - booking.amount
        return result

    def check_opening_balance(
        self,
        bookings: list[Booking],
        opening_balance: Decimal,
    ) -> bool:
        """Compare the derived balance before the oldest booking.

        Returns True if consistent. A mismatch is logged and otherwise
        ignored: the bank's closing balance is never overridden.
        """
        if not bookings or bookings[-1].balance is None:
            return True

        oldest = bookings[-1]
        balance_before_oldest = oldest.balance - oldest.amount
        if balance_before_oldest != opening_balance:
            logger.warning(
                "Opening booked balance %s does not match the calculated "
                "balance %s before the oldest booking",
                opening_balance,
                balance_before_oldest,
            )
            return False
        return True
