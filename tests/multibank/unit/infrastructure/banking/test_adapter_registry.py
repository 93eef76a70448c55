"""Unit tests for AdapterRegistry."""

from unittest.mock import Mock

import pytest

from multibank.domain.banking.exceptions import (
    ResourceNotFoundError,
    UnsupportedOperationError,
)
from multibank.domain.banking.ports import BankInfo, BankingProtocolAdapter
from multibank.domain.banking.value_objects import BankApi
from multibank.infrastructure.banking import AdapterRegistry, InMemoryBankDirectory


def _adapter(bank_api, supported=True):
    adapter = Mock(spec=BankingProtocolAdapter)
    adapter.bank_api = bank_api
    adapter.bank_supported.return_value = supported
    return adapter


@pytest.fixture
def directory():
    return InMemoryBankDirectory(
        [
            BankInfo(
                bank_code="37040044",
                name="Commerzbank",
                bank_apis=(BankApi.XS2A, BankApi.FINTS),
            ),
            BankInfo(
                bank_code="12030000",
                name="DKB",
                bank_apis=(BankApi.AGGREGATOR,),
            ),
        ],
    )


class TestResolve:
    """Adapter choice follows the bank's preference order."""

    def test_first_listed_api_wins(self, directory):
        xs2a, fints = _adapter(BankApi.XS2A), _adapter(BankApi.FINTS)
        registry = AdapterRegistry([fints, xs2a], directory)

        assert registry.resolve("37040044") is xs2a

    def test_preferred_api_wins_when_offered(self, directory):
        xs2a, fints = _adapter(BankApi.XS2A), _adapter(BankApi.FINTS)
        registry = AdapterRegistry([xs2a, fints], directory)

        assert registry.resolve("37040044", preferred_api=BankApi.FINTS) is fints

    def test_preferred_api_not_offered_falls_back(self, directory):
        xs2a, aggregator = _adapter(BankApi.XS2A), _adapter(BankApi.AGGREGATOR)
        registry = AdapterRegistry([xs2a, aggregator], directory)

        adapter = registry.resolve("37040044", preferred_api=BankApi.AGGREGATOR)

        assert adapter is xs2a

    def test_unregistered_api_is_skipped(self, directory):
        fints = _adapter(BankApi.FINTS)
        registry = AdapterRegistry([fints], directory)

        assert registry.resolve("37040044") is fints

    def test_adapter_not_supporting_bank_is_skipped(self, directory):
        xs2a = _adapter(BankApi.XS2A, supported=False)
        fints = _adapter(BankApi.FINTS)
        registry = AdapterRegistry([xs2a, fints], directory)

        assert registry.resolve("3704 0044") is fints
        xs2a.bank_supported.assert_called_once_with("37040044")

    def test_unknown_bank(self, directory):
        registry = AdapterRegistry([_adapter(BankApi.XS2A)], directory)

        with pytest.raises(ResourceNotFoundError) as exc_info:
            registry.resolve("99999999")

        assert exc_info.value.details == {"bank_code": "99999999"}

    def test_no_adapter_for_bank(self, directory):
        registry = AdapterRegistry([_adapter(BankApi.XS2A)], directory)

        with pytest.raises(UnsupportedOperationError):
            registry.resolve("12030000")


class TestAdapterFor:
    def test_registered(self, directory):
        fints = _adapter(BankApi.FINTS)
        registry = AdapterRegistry([fints], directory)

        assert registry.adapter_for(BankApi.FINTS) is fints
        assert registry.bank_apis == frozenset({BankApi.FINTS})

    def test_not_registered(self, directory):
        registry = AdapterRegistry([], directory)

        with pytest.raises(UnsupportedOperationError):
            registry.adapter_for(BankApi.XS2A)
