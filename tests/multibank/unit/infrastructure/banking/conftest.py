"""Shared fixtures for the REST banking adapters."""

import json

import httpx
import pytest

from multibank.infrastructure.banking import BankingRestClient

BASE_URL = "https://bank-api.test"


class FakeBankApi:
    """
    Scripted bank behind an httpx.MockTransport.

    Responses are queued per (method, path); the last queued response of a
    route is repeated. Every request is recorded.
    """

    def __init__(self):
        self.routes = {}
        self.requests = []

    def add(self, method, path, status=200, json=None, text=None, headers=None):
        self.routes.setdefault((method, path), []).append(
            ("response", status, json, text, headers),
        )
        return self

    def fail(self, method, path, error):
        self.routes.setdefault((method, path), []).append(("error", error))
        return self

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"tppMessages": []})

        entry = queue.pop(0) if len(queue) > 1 else queue[0]
        if entry[0] == "error":
            raise entry[1]

        _, status, body, text, headers = entry
        if text is not None:
            return httpx.Response(status, text=text, headers=headers)
        return httpx.Response(status, json=body, headers=headers)

    def paths(self, method=None):
        return [
            r.url.path for r in self.requests if method is None or r.method == method
        ]

    def last(self, method, path):
        for request in reversed(self.requests):
            if request.method == method and request.url.path == path:
                return request
        msg = f"No {method} {path} request recorded"
        raise AssertionError(msg)

    @staticmethod
    def body(request: httpx.Request):
        return json.loads(request.content)


@pytest.fixture
def fake_bank():
    return FakeBankApi()


@pytest.fixture
def rest_client(fake_bank):
    return BankingRestClient(
        base_url=BASE_URL,
        transport=httpx.MockTransport(fake_bank),
    )
