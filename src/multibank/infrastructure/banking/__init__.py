"""Banking infrastructure - protocol adapters, pagination and bank lookup."""

from multibank.infrastructure.banking.adapter_registry import AdapterRegistry
from multibank.infrastructure.banking.bank_directory import (
    BankDirectoryError,
    CsvBankDirectory,
    CsvFileNotFoundError,
    CsvParseError,
    InMemoryBankDirectory,
)
from multibank.infrastructure.banking.rest_client import (
    BankingRestClient,
    error_from_response,
)

__all__ = [
    "AdapterRegistry",
    "BankDirectoryError",
    "BankingRestClient",
    "CsvBankDirectory",
    "CsvFileNotFoundError",
    "CsvParseError",
    "InMemoryBankDirectory",
    "error_from_response",
]
