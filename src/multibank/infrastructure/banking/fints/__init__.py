"""FinTS banking adapter backed by geldstrom."""

from multibank.infrastructure.banking.fints.adapter import FinTSAdapter
from multibank.infrastructure.banking.fints.client_factory import (
    FinTSClientFactory,
    geldstrom_client_factory,
)
from multibank.infrastructure.banking.fints.sca_dialog import FinTSScaDialog

__all__ = [
    "FinTSAdapter",
    "FinTSClientFactory",
    "FinTSScaDialog",
    "geldstrom_client_factory",
]
