"""FinTS dialog lifecycle and error translation."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Optional

from multibank.domain.banking.exceptions import (
    BankingError,
    InternalError,
    InvalidPinError,
    ProtocolError,
)
from multibank.infrastructure.banking.fints.client_factory import client_kwargs

if TYPE_CHECKING:
    from multibank.domain.banking.value_objects import (
        BankCredentials,
        BankingRequest,
    )
    from multibank.infrastructure.banking.fints.client_factory import (
        FinTSClientFactory,
    )

logger = logging.getLogger(__name__)


def map_fints_error(error: Exception, action: str) -> BankingError:
    """Translate a geldstrom failure into the banking error taxonomy."""
    if isinstance(error, BankingError):
        return error

    error_msg = str(error)
    if "authentication" in error_msg.lower() or "pin" in error_msg.lower():
        logger.warning("%s failed, bank rejected the credentials", action)
        msg = f"Authentication failed: {error_msg}"
        return InvalidPinError(msg)

    logger.error("%s failed: %s", action, error_msg, exc_info=error)
    msg = f"{action} failed: {error_msg}"
    return ProtocolError(msg)


def require_credentials(request: BankingRequest) -> BankCredentials:
    if request.credentials is None:
        msg = "No FinTS credentials supplied"
        raise InvalidPinError(msg)
    return request.credentials


def server_url_for(credentials: BankCredentials, bank_code: str) -> str:
    if not credentials.endpoint:
        msg = f"No FinTS server URL known for bank {bank_code}"
        raise InternalError(msg)
    return credentials.endpoint


@contextmanager
def fints_session(
    factory: FinTSClientFactory,
    request: BankingRequest,
    tan_method: Optional[str] = None,
    tan_medium: Optional[str] = None,
) -> Iterator[tuple[Any, Any]]:
    """
    Open one FinTS dialog and yield ``(client, accounts)``.

    The dialog is always closed again; the tan method/medium default to
    the values a previous authorisation stored in ``session_data``.
    """
    credentials = require_credentials(request)
    bank_code = request.effective_bank_code
    server_url = server_url_for(credentials, bank_code)

    logger.info("Connecting to bank with BLZ %s at %s", bank_code, server_url)
    client = factory(
        **client_kwargs(bank_code, credentials, server_url),
        tan_method=tan_method or request.session_data.get("tan_method"),
        tan_medium=tan_medium or request.session_data.get("tan_medium"),
    )
    try:
        accounts = client.connect()
    except Exception as e:
        raise map_fints_error(e, "Connection") from e

    try:
        yield client, accounts
    finally:
        logger.info("Disconnecting from bank")
        client.disconnect()
