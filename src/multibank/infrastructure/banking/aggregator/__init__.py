"""Aggregator (finAPI style) banking adapter."""

from multibank.infrastructure.banking.aggregator.adapter import AggregatorAdapter
from multibank.infrastructure.banking.aggregator.page_fetcher import (
    AggregatorPageFetcher,
)

__all__ = [
    "AggregatorAdapter",
    "AggregatorPageFetcher",
]
