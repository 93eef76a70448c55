"""Transaction report pagination."""

from multibank.infrastructure.banking.pagination.continuation import (
    DEFAULT_SCHEMES,
    PAGE,
    SCROLL_REF,
    Continuation,
    ContinuationScheme,
    account_id_from_link,
    resolve_continuation,
)
from multibank.infrastructure.banking.pagination.cursor import (
    PageFetcher,
    PaginationCursor,
    TransactionPage,
)
from multibank.infrastructure.banking.pagination.engine import PaginationEngine

__all__ = [
    "DEFAULT_SCHEMES",
    "PAGE",
    "SCROLL_REF",
    "Continuation",
    "ContinuationScheme",
    "PageFetcher",
    "PaginationCursor",
    "PaginationEngine",
    "TransactionPage",
    "account_id_from_link",
    "resolve_continuation",
]
