"""Creation of geldstrom FinTS clients."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, Protocol

from multibank_config.settings import get_settings

if TYPE_CHECKING:
    from multibank.domain.banking.value_objects import BankCredentials

# Decoupled (app) approvals are polled for up to five minutes
TAN_POLL_INTERVAL = 5.0
TAN_TIMEOUT_SECONDS = 300.0


class FinTSClientFactory(Protocol):
    def __call__(
        self,
        *,
        bank_code: str,
        server_url: str,
        user_id: str,
        pin: str,
        tan_method: Optional[str] = None,
        tan_medium: Optional[str] = None,
    ) -> Any: ...


def geldstrom_client_factory(
    *,
    bank_code: str,
    server_url: str,
    user_id: str,
    pin: str,
    tan_method: Optional[str] = None,
    tan_medium: Optional[str] = None,
) -> Any:
    """Create a ``geldstrom.FinTS3Client`` (requires the ``fints`` extra)."""
    from geldstrom import FinTS3Client
    from geldstrom.domain import TANConfig

    settings = get_settings()
    return FinTS3Client(
        bank_code=bank_code,
        server_url=server_url,
        user_id=user_id,
        pin=pin,
        product_id=settings.fints_product_id,
        tan_method=tan_method,
        tan_medium=tan_medium,
        tan_config=TANConfig(
            poll_interval=TAN_POLL_INTERVAL,
            timeout_seconds=TAN_TIMEOUT_SECONDS,
        ),
    )


def client_kwargs(
    bank_code: str,
    credentials: BankCredentials,
    server_url: str,
) -> dict[str, Any]:
    return {
        "bank_code": bank_code,
        "server_url": server_url,
        "user_id": credentials.login,
        "pin": credentials.pin.get_secret_value(),
    }
