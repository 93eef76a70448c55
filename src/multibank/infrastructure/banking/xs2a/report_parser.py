"""Parser hook for non-JSON transaction reports (CAMT, MT940)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from multibank.infrastructure.banking.pagination import TransactionPage

CAMT_MEDIA_TYPE = "application/xml"
MT940_MEDIA_TYPE = "text/plain"


class TransactionReportParser(ABC):
    """Turns a raw CAMT or MT940 report into one transaction page.

    Raw reports carry no pagination links, so the returned page is the
    whole report.
    """

    @abstractmethod
    def parse(self, report: str, media_type: str) -> TransactionPage:
        """Parse ``report`` delivered with ``media_type``."""


def is_raw_report(media_type: str) -> bool:
    media_type = media_type.lower()
    return CAMT_MEDIA_TYPE in media_type or MT940_MEDIA_TYPE in media_type
