"""HTTP client shared by the REST banking adapters (XS2A, aggregator).

Transport failures and error responses are translated into the banking
error taxonomy here, so nothing httpx-specific leaves an adapter.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from multibank.domain.banking.exceptions import (
    BankingError,
    ConsentRequiredError,
    InvalidConsentError,
    InvalidPinError,
    ProtocolError,
    ResourceNotFoundError,
)

logger = logging.getLogger(__name__)

CONSENT_UNKNOWN = "CONSENT_UNKNOWN"
CONSENT_INVALID = "CONSENT_INVALID"
ACCESS_EXCEEDED = "ACCESS_EXCEEDED"


class BankingRestClient:
    """Thin httpx.AsyncClient wrapper for one bank API base URL."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._headers = {"Accept": "application/json", **(headers or {})}
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers=self._headers,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Send one request; error statuses raise a BankingError."""
        client = await self._get_client()
        try:
            response = await client.request(
                method,
                path,
                params=params,
                json=json,
                data=data,
                headers=headers,
            )
        except httpx.TimeoutException as e:
            logger.warning("Bank API timeout on %s %s: %s", method, path, e)
            msg = f"Bank API timeout: {e}"
            raise ProtocolError(msg) from e
        except httpx.HTTPError as e:
            logger.warning("Bank API request %s %s failed: %s", method, path, e)
            msg = f"Bank API request failed: {e}"
            raise ProtocolError(msg) from e

        if response.is_error:
            logger.warning(
                "Bank API returned error %d on %s %s: %s",
                response.status_code,
                method,
                path,
                response.text[:200] if response.text else "no body",
            )
            raise error_from_response(response)

        return response

    async def get(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", path, **kwargs)

    @staticmethod
    def json(response: httpx.Response) -> dict[str, Any]:
        """Decode a JSON object body or raise ProtocolError."""
        try:
            body = response.json()
        except ValueError as e:
            msg = f"Bank API returned invalid JSON: {e}"
            raise ProtocolError(msg) from e
        if not isinstance(body, dict):
            msg = "Bank API returned a JSON body that is not an object"
            raise ProtocolError(msg)
        return body


def error_from_response(response: httpx.Response) -> BankingError:
    """
    Map an HTTP error response onto the banking error taxonomy.

    Berlin Group banks report details as ``tppMessages``; aggregators as
    ``errors``. Both are carried as ``messages`` on the raised error.

    Mapping:
    - 429 -> InvalidConsentError (consent access exceeded)
    - CONSENT_UNKNOWN on 400/401/403 -> ConsentRequiredError
    - other CONSENT_* codes on 401/403 -> InvalidConsentError with that code
    - 401 -> InvalidPinError
    - 404 -> ResourceNotFoundError
    - anything else -> ProtocolError
    """
    status = response.status_code
    codes, messages = _error_messages(response)

    if status == 429:
        return InvalidConsentError(
            "consent access exceeded",
            reason=ACCESS_EXCEEDED,
            http_status=429,
            messages=messages,
        )

    if status in (400, 401, 403) and CONSENT_UNKNOWN in codes:
        return ConsentRequiredError(messages=messages)

    consent_code = next((c for c in codes if c.startswith("CONSENT_")), None)
    if status in (401, 403) and consent_code is not None:
        return InvalidConsentError(
            f"Consent rejected by bank: {consent_code}",
            reason=consent_code,
            http_status=status,
            messages=messages,
        )

    if status == 401:
        return InvalidPinError(messages=messages)

    if status == 404:
        return ResourceNotFoundError(
            details={"path": response.request.url.path},
            messages=messages,
        )

    return ProtocolError(
        f"Bank API returned status {status}",
        http_status=status,
        messages=messages,
    )


def _error_messages(response: httpx.Response) -> tuple[list[str], list[str]]:
    """Extract (codes, texts) from a tppMessages or errors list."""
    try:
        body = response.json()
    except ValueError:
        return [], []
    if not isinstance(body, dict):
        return [], []

    entries = body.get("tppMessages") or body.get("errors") or []
    codes: list[str] = []
    messages: list[str] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        code = entry.get("code")
        text = entry.get("text") or entry.get("message")
        if code:
            codes.append(str(code))
        if text or code:
            messages.append(str(text or code))
    return codes, messages
