"""Unit tests for BankingRestClient and HTTP error mapping."""

import httpx
import pytest

from multibank.domain.banking.exceptions import (
    ConsentRequiredError,
    InvalidConsentError,
    InvalidPinError,
    ProtocolError,
    ResourceNotFoundError,
)
from multibank.infrastructure.banking import error_from_response


def _response(status, body=None):
    request = httpx.Request("GET", "https://bank-api.test/v1/accounts/a1")
    if body is None:
        return httpx.Response(status, request=request)
    return httpx.Response(status, json=body, request=request)


def _tpp(*codes):
    return {
        "tppMessages": [
            {"category": "ERROR", "code": code, "text": f"{code} text"}
            for code in codes
        ],
    }


# ═══════════════════════════════════════════════════════════════
#                     Status mapping
# ═══════════════════════════════════════════════════════════════


class TestErrorFromResponse:
    """HTTP error responses map onto the banking error taxonomy."""

    def test_401_is_invalid_pin(self):
        error = error_from_response(_response(401, _tpp("PSU_CREDENTIALS_INVALID")))

        assert isinstance(error, InvalidPinError)
        assert error.messages == ["PSU_CREDENTIALS_INVALID text"]

    def test_404_is_resource_not_found(self):
        error = error_from_response(_response(404))

        assert isinstance(error, ResourceNotFoundError)
        assert error.details == {"path": "/v1/accounts/a1"}

    def test_429_is_access_exceeded(self):
        error = error_from_response(_response(429, _tpp("ACCESS_EXCEEDED")))

        assert isinstance(error, InvalidConsentError)
        assert error.reason == "ACCESS_EXCEEDED"
        assert error.http_status == 429

    def test_429_without_body(self):
        error = error_from_response(_response(429))

        assert isinstance(error, InvalidConsentError)
        assert error.http_status == 429

    @pytest.mark.parametrize("code", ["CONSENT_EXPIRED", "CONSENT_INVALID"])
    def test_403_with_consent_code_is_invalid_consent(self, code):
        error = error_from_response(_response(403, _tpp(code)))

        assert isinstance(error, InvalidConsentError)
        assert error.reason == code
        assert error.http_status == 403
        assert error.messages == [f"{code} text"]

    @pytest.mark.parametrize("status", [400, 401, 403])
    def test_consent_unknown_requires_new_consent(self, status):
        error = error_from_response(_response(status, _tpp("CONSENT_UNKNOWN")))

        assert isinstance(error, ConsentRequiredError)

    def test_other_status_is_protocol_error(self):
        error = error_from_response(_response(500, {"unexpected": True}))

        assert isinstance(error, ProtocolError)
        assert error.http_status == 500

    def test_400_without_consent_code_is_protocol_error(self):
        error = error_from_response(_response(400, _tpp("FORMAT_ERROR")))

        assert isinstance(error, ProtocolError)
        assert error.messages == ["FORMAT_ERROR text"]

    def test_aggregator_error_list(self):
        body = {"errors": [{"code": "BAD_REQUEST", "message": "Invalid page"}]}

        error = error_from_response(_response(422, body))

        assert isinstance(error, ProtocolError)
        assert error.messages == ["Invalid page"]


# ═══════════════════════════════════════════════════════════════
#                     Transport
# ═══════════════════════════════════════════════════════════════


class TestBankingRestClient:
    """Transport failures never leave the client as httpx errors."""

    @pytest.mark.asyncio
    async def test_successful_request(self, fake_bank, rest_client):
        fake_bank.add("GET", "/v1/ping", json={"ok": True})

        response = await rest_client.get("/v1/ping", params={"a": "1"})

        assert rest_client.json(response) == {"ok": True}
        assert fake_bank.requests[0].url.params["a"] == "1"
        assert fake_bank.requests[0].headers["Accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_error_status_raises_taxonomy_error(self, fake_bank, rest_client):
        fake_bank.add("GET", "/v1/ping", status=401)

        with pytest.raises(InvalidPinError):
            await rest_client.get("/v1/ping")

    @pytest.mark.asyncio
    async def test_connection_error_is_protocol_error(self, fake_bank, rest_client):
        fake_bank.fail("GET", "/v1/ping", httpx.ConnectError("connection refused"))

        with pytest.raises(ProtocolError, match="connection refused"):
            await rest_client.get("/v1/ping")

    @pytest.mark.asyncio
    async def test_timeout_is_protocol_error(self, fake_bank, rest_client):
        fake_bank.fail("GET", "/v1/ping", httpx.ReadTimeout("read timed out"))

        with pytest.raises(ProtocolError, match="timeout"):
            await rest_client.get("/v1/ping")

    @pytest.mark.asyncio
    async def test_invalid_json_is_protocol_error(self, fake_bank, rest_client):
        fake_bank.add("GET", "/v1/ping", text="not json")

        response = await rest_client.get("/v1/ping")

        with pytest.raises(ProtocolError):
            rest_client.json(response)

    @pytest.mark.asyncio
    async def test_json_array_is_protocol_error(self, fake_bank, rest_client):
        fake_bank.add("GET", "/v1/ping", json=[1, 2])

        response = await rest_client.get("/v1/ping")

        with pytest.raises(ProtocolError):
            rest_client.json(response)

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, fake_bank, rest_client):
        fake_bank.add("GET", "/v1/ping", json={})
        await rest_client.get("/v1/ping")

        await rest_client.close()
        await rest_client.close()
