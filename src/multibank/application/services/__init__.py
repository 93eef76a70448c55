"""Application layer services."""

from multibank.application.services.banking_service import BankingService

__all__ = ["BankingService"]
