"""PSD2 / XS2A banking adapter."""

from multibank.infrastructure.banking.xs2a.adapter import Xs2aAdapter
from multibank.infrastructure.banking.xs2a.page_fetcher import (
    Xs2aPageFetcher,
    xs2a_headers,
)
from multibank.infrastructure.banking.xs2a.report_parser import (
    TransactionReportParser,
)
from multibank.infrastructure.banking.xs2a.sca_dialog import Xs2aScaDialog

__all__ = [
    "TransactionReportParser",
    "Xs2aAdapter",
    "Xs2aPageFetcher",
    "Xs2aScaDialog",
    "xs2a_headers",
]
