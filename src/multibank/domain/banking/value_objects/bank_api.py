"""Bank API variants and adapter capabilities."""

from enum import Enum


class BankApi(str, Enum):
    """Protocol family a bank integration speaks."""

    FINTS = "FINTS"  # terminal-emulated FinTS/HBCI dialog
    XS2A = "XS2A"  # PSD2 Berlin Group REST
    AGGREGATOR = "AGGREGATOR"  # aggregator REST SDK


class Capability(str, Enum):
    """Operations a banking protocol adapter may offer."""

    DISCOVER_ACCOUNTS = "discover_accounts"
    LIST_TRANSACTIONS = "list_transactions"
    LIST_BALANCES = "list_balances"
    LIST_STANDING_ORDERS = "list_standing_orders"
    EXECUTE_PAYMENT = "execute_payment"
    STRONG_CUSTOMER_AUTHORISATION = "strong_customer_authorisation"
