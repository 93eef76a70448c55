"""Lookup of the banking protocol adapter serving a bank."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Optional

from multibank.domain.banking.exceptions import (
    ResourceNotFoundError,
    UnsupportedOperationError,
)

if TYPE_CHECKING:
    from multibank.domain.banking.ports import (
        BankDirectoryPort,
        BankInfo,
        BankingProtocolAdapter,
    )
    from multibank.domain.banking.value_objects import BankApi

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """
    Resolves which adapter serves a bank.

    The bank directory lists the APIs a bank can be reached by in order of
    preference. A caller-preferred API wins if the bank lists it and an
    adapter for it is registered; otherwise the first listed API whose
    adapter is registered and supports the bank is used.
    """

    def __init__(
        self,
        adapters: Iterable[BankingProtocolAdapter],
        directory: BankDirectoryPort,
    ):
        self._adapters = {adapter.bank_api: adapter for adapter in adapters}
        self._directory = directory

    @property
    def bank_apis(self) -> frozenset[BankApi]:
        return frozenset(self._adapters)

    def bank_info(self, bank_code: str) -> BankInfo:
        bank = self._directory.lookup(bank_code)
        if bank is None:
            msg = f"Bank {bank_code} is unknown"
            raise ResourceNotFoundError(msg, details={"bank_code": bank_code})
        return bank

    def resolve(
        self,
        bank_code: str,
        preferred_api: Optional[BankApi] = None,
    ) -> BankingProtocolAdapter:
        """
        Pick the adapter for ``bank_code``.

        Raises
        ------
        ResourceNotFoundError
            If the bank is not in the directory
        UnsupportedOperationError
            If no registered adapter can serve the bank
        """
        bank = self.bank_info(bank_code)

        candidates = list(bank.bank_apis)
        if preferred_api is not None and preferred_api in candidates:
            candidates.remove(preferred_api)
            candidates.insert(0, preferred_api)
        elif preferred_api is not None:
            logger.info(
                "Bank %s does not offer %s, falling back to %s",
                bank_code,
                preferred_api.value,
                [api.value for api in candidates],
            )

        for bank_api in candidates:
            adapter = self._adapters.get(bank_api)
            if adapter is not None and adapter.bank_supported(bank.bank_code):
                logger.debug("Using %s adapter for bank %s", bank_api.value, bank_code)
                return adapter

        msg = f"No adapter available for bank {bank_code}"
        raise UnsupportedOperationError("resolve_adapter", message=msg)

    def adapter_for(self, bank_api: BankApi) -> BankingProtocolAdapter:
        adapter = self._adapters.get(bank_api)
        if adapter is None:
            msg = f"No adapter registered for {bank_api.value}"
            raise UnsupportedOperationError("adapter_for", bank_api.value, msg)
        return adapter
