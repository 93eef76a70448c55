"""Bank metadata lookup port."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from multibank.domain.banking.value_objects.bank_api import BankApi


@dataclass(frozen=True)
class BankInfo:
    """What we know about a bank: its code and the APIs it can be reached by."""

    bank_code: str
    name: str
    bank_apis: tuple[BankApi, ...] = field(default_factory=tuple)
    bic: Optional[str] = None
    fints_url: Optional[str] = None
    bank_api_bank_code: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.name} ({self.bank_code})"


class BankDirectoryPort(ABC):
    """Resolves bank metadata by bank code."""

    @abstractmethod
    def lookup(self, bank_code: str) -> Optional[BankInfo]:
        """Return the bank's metadata, or None if the bank is unknown."""
