"""Unit tests for continuation schemes and the pagination cursor."""

from datetime import date

import pytest

from multibank.infrastructure.banking.pagination import (
    PAGE,
    SCROLL_REF,
    Continuation,
    ContinuationScheme,
    PaginationCursor,
    account_id_from_link,
    resolve_continuation,
)


class TestResolveContinuation:
    """Next links are matched against the known schemes in order."""

    def test_scroll_ref(self):
        continuation = resolve_continuation(
            "https://bank.example/v1/accounts/a1/transactions?scrollRef=abc123",
        )

        assert continuation == Continuation(scheme=SCROLL_REF, token="abc123")

    def test_page(self):
        continuation = resolve_continuation(
            "/v1/accounts/a1/transactions?dateFrom=2025-01-01&page=3",
        )

        assert continuation.scheme is PAGE
        assert continuation.token == "3"

    def test_token_is_url_decoded(self):
        continuation = resolve_continuation(
            "/v1/accounts/a1/transactions?scrollRef=a%2Bb%3D%3D",
        )

        assert continuation.token == "a+b=="

    def test_first_matching_scheme_wins(self):
        continuation = resolve_continuation("/t?page=2&scrollRef=xyz")

        assert continuation.scheme is SCROLL_REF

    def test_unknown_parameter(self):
        assert resolve_continuation("/t?offset=100") is None
        assert resolve_continuation("/t") is None

    def test_custom_scheme_with_predicate(self):
        numeric_offset = ContinuationScheme(
            query_parameter="offset",
            replay_date_range=True,
            applies=lambda query: query["offset"][0].isdigit(),
        )

        assert resolve_continuation("/t?offset=abc", (numeric_offset,)) is None
        assert resolve_continuation("/t?offset=50", (numeric_offset,)).token == "50"


class TestAccountIdFromLink:
    @pytest.mark.parametrize(
        ("link", "expected"),
        [
            ("/v1/accounts/acc-1/balances", "acc-1"),
            ("https://x.example/v1/accounts/acc-2", "acc-2"),
            ("/v1/accounts/outer/accounts/inner/balances", "inner"),
            ("/v1/accounts", None),
            ("/v1/balances", None),
        ],
    )
    def test_account_id_after_last_accounts_segment(self, link, expected):
        assert account_id_from_link(link) == expected


class TestCursorQueryParams:
    """Follow-up calls replay the date range only where the bank wants it."""

    @pytest.fixture
    def cursor(self):
        return PaginationCursor(
            resource_id="acc-1",
            bank_code="12345678",
            date_from=date(2025, 1, 1),
            date_to=date(2025, 3, 31),
            with_balance=True,
        )

    def test_first_page(self, cursor):
        assert cursor.query_params() == {
            "bookingStatus": "booked",
            "withBalance": "true",
            "dateFrom": "2025-01-01",
            "dateTo": "2025-03-31",
        }

    def test_scroll_ref_drops_date_range(self, cursor):
        params = cursor.query_params(Continuation(SCROLL_REF, "abc"))

        assert params["scrollRef"] == "abc"
        assert "dateFrom" not in params
        assert "dateTo" not in params

    def test_page_replays_date_range(self, cursor):
        params = cursor.query_params(Continuation(PAGE, "2"))

        assert params["page"] == "2"
        assert params["dateFrom"] == "2025-01-01"
        assert params["dateTo"] == "2025-03-31"
