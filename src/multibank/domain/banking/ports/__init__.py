"""Ports (interfaces) for banking domain."""

from multibank.domain.banking.ports.bank_directory_port import (
    BankDirectoryPort,
    BankInfo,
)
from multibank.domain.banking.ports.banking_protocol_port import BankingProtocolAdapter
from multibank.domain.banking.ports.sca_dialog_port import ScaDialogPort

__all__ = [
    "BankDirectoryPort",
    "BankInfo",
    "BankingProtocolAdapter",
    "ScaDialogPort",
]
