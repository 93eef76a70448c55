"""Unit tests for the XS2A adapter against a scripted bank API."""

from datetime import date
from decimal import Decimal
from unittest.mock import Mock

import pytest

from multibank.domain.banking.exceptions import (
    ConsentAuthorisationRequiredError,
    InvalidAccountReferenceError,
    InvalidConsentError,
    ProtocolError,
    UnsupportedOperationError,
)
from multibank.domain.banking.services import ScaAuthorisationStateMachine
from multibank.domain.banking.value_objects import (
    AccountsRequest,
    BalancesRequest,
    BankAccount,
    BankApi,
    Booking,
    BulkPayment,
    PaymentRequest,
    PsuAuthenticationRequest,
    ScaStatus,
    SinglePayment,
    StandingOrdersRequest,
    TransactionAuthorisationRequest,
    TransactionsRequest,
)
from multibank.infrastructure.banking.pagination import TransactionPage
from multibank.infrastructure.banking.xs2a import (
    TransactionReportParser,
    Xs2aAdapter,
)

IBAN = "DE89370400440532013000"
ACCOUNTS_PATH = "/v1/accounts"
TRANSACTIONS_PATH = "/v1/accounts/res-1/transactions"
PAYMENT_AUTHORISATIONS = "/v1/payments/sepa-credit-transfers/pay-1/authorisations"


def _account(with_resource_id=True):
    account = BankAccount(iban=IBAN)
    if with_resource_id:
        account = account.with_external_id(BankApi.XS2A, "res-1")
    return account


def _transactions_request(account=None, **kwargs):
    return TransactionsRequest(
        bank_code="37040044",
        consent_id="consent-1",
        account=account or _account(),
        date_from=date(2025, 1, 1),
        date_to=date(2025, 1, 31),
        **kwargs,
    )


def _transaction(transaction_id, amount, day):
    return {
        "transactionId": transaction_id,
        "bookingDate": f"2025-01-{day:02d}",
        "valueDate": f"2025-01-{day:02d}",
        "transactionAmount": {"currency": "EUR", "amount": amount},
        "creditorName": "Shop",
        "creditorAccount": {"iban": "DE02120300000000202051"},
        "debtorName": "Employer",
        "remittanceInformationUnstructured": f"purpose {transaction_id}",
    }


@pytest.fixture
def adapter(rest_client):
    return Xs2aAdapter(client=rest_client, max_pages=10)


# ═══════════════════════════════════════════════════════════════
#                     Accounts
# ═══════════════════════════════════════════════════════════════


class TestDiscoverAccounts:
    """Accounts are mapped with their XS2A resource id."""

    @pytest.mark.asyncio
    async def test_accounts_are_mapped(self, adapter, fake_bank):
        fake_bank.add(
            "GET",
            ACCOUNTS_PATH,
            json={
                "accounts": [
                    {
                        "resourceId": "res-1",
                        "iban": IBAN,
                        "currency": "EUR",
                        "name": "Girokonto",
                        "ownerName": "Max Mustermann",
                    },
                    {"resourceId": "card-1", "maskedPan": "1234********5678"},
                ],
            },
        )

        response = await adapter.discover_accounts(
            AccountsRequest(
                bank_code="37040044",
                bank_api_bank_code="37040099",
                consent_id="consent-1",
            ),
        )

        assert len(response.accounts) == 1
        account = response.accounts[0]
        assert account.iban == IBAN
        assert account.external_id(BankApi.XS2A) == "res-1"
        assert account.owner_name == "Max Mustermann"

        request = fake_bank.requests[0]
        assert request.headers["X-GTW-Bank-Code"] == "37040099"
        assert request.headers["Consent-ID"] == "consent-1"
        assert request.url.params["withBalance"] == "false"


# ═══════════════════════════════════════════════════════════════
#                     Transactions
# ═══════════════════════════════════════════════════════════════


class TestListTransactions:
    """Transactions are paginated, reconciled and resolved by IBAN."""

    @pytest.mark.asyncio
    async def test_paginated_report_with_scroll_ref(self, adapter, fake_bank):
        fake_bank.add(
            "GET",
            TRANSACTIONS_PATH,
            json={
                "account": {"iban": IBAN},
                "balances": [
                    {
                        "balanceType": "closingBooked",
                        "balanceAmount": {"currency": "EUR", "amount": "1000.00"},
                        "referenceDate": "2025-01-31",
                    },
                ],
                "transactions": {
                    "booked": [
                        _transaction("T1", "50.00", 1),
                        _transaction("T2", "-20.00", 2),
                    ],
                    "_links": {
                        "next": {
                            "href": f"{TRANSACTIONS_PATH}?scrollRef=abc%3D%3D",
                        },
                    },
                },
            },
        ).add(
            "GET",
            TRANSACTIONS_PATH,
            json={"transactions": {"booked": [_transaction("T3", "5.00", 3)]}},
        )

        response = await adapter.list_transactions(_transactions_request())

        assert [b.external_id for b in response.bookings] == ["T3", "T2", "T1"]
        assert [b.balance for b in response.bookings] == [
            Decimal("1000.00"),
            Decimal("995.00"),
            Decimal("1015.00"),
        ]
        outgoing = response.bookings[1]
        assert outgoing.counterparty_name == "Shop"
        assert outgoing.counterparty_iban == "DE02120300000000202051"
        assert response.bookings[0].counterparty_name == "Employer"

        first, second = fake_bank.requests
        assert first.url.params["dateFrom"] == "2025-01-01"
        assert first.url.params["dateTo"] == "2025-01-31"
        assert first.url.params["bookingStatus"] == "booked"
        assert second.url.params["scrollRef"] == "abc=="
        assert "dateFrom" not in second.url.params

    @pytest.mark.asyncio
    async def test_page_scheme_replays_date_range(self, adapter, fake_bank):
        fake_bank.add(
            "GET",
            TRANSACTIONS_PATH,
            json={
                "transactions": {
                    "booked": [_transaction("T2", "1.00", 2)],
                },
                "_links": {"next": {"href": f"{TRANSACTIONS_PATH}?page=2"}},
            },
        ).add(
            "GET",
            TRANSACTIONS_PATH,
            json={"transactions": {"booked": [_transaction("T1", "1.00", 1)]}},
        )

        response = await adapter.list_transactions(_transactions_request())

        assert len(response.bookings) == 2
        second = fake_bank.requests[1]
        assert second.url.params["page"] == "2"
        assert second.url.params["dateFrom"] == "2025-01-01"

    @pytest.mark.asyncio
    async def test_account_resolved_by_iban(self, adapter, fake_bank):
        fake_bank.add(
            "GET",
            ACCOUNTS_PATH,
            json={"accounts": [{"resourceId": "res-1", "iban": IBAN}]},
        ).add("GET", TRANSACTIONS_PATH, json={"transactions": {"booked": []}})

        response = await adapter.list_transactions(
            _transactions_request(_account(with_resource_id=False)),
        )

        assert fake_bank.paths() == [ACCOUNTS_PATH, TRANSACTIONS_PATH]
        assert response.account.external_id(BankApi.XS2A) == "res-1"
        assert response.bookings == []

    @pytest.mark.asyncio
    async def test_unknown_iban_is_invalid_account_reference(
        self,
        adapter,
        fake_bank,
    ):
        fake_bank.add(
            "GET",
            ACCOUNTS_PATH,
            json={
                "accounts": [
                    {"resourceId": "res-9", "iban": "DE02120300000000202051"},
                ],
            },
        )

        with pytest.raises(InvalidAccountReferenceError):
            await adapter.list_transactions(
                _transactions_request(_account(with_resource_id=False)),
            )

    @pytest.mark.asyncio
    async def test_balances_link_fallback(self, adapter, fake_bank):
        fake_bank.add(
            "GET",
            TRANSACTIONS_PATH,
            json={
                "transactions": {"booked": [_transaction("T1", "10.00", 1)]},
                "_links": {"balances": {"href": "/v1/accounts/res-1/balances"}},
            },
        ).add(
            "GET",
            "/v1/accounts/res-1/balances",
            json={
                "balances": [
                    {
                        "balanceType": "closingBooked",
                        "balanceAmount": {"currency": "EUR", "amount": "250.00"},
                    },
                    {
                        "balanceType": "expected",
                        "balanceAmount": {"currency": "EUR", "amount": "240.00"},
                    },
                ],
            },
        )

        response = await adapter.list_transactions(_transactions_request())

        assert response.bookings[0].balance == Decimal("250.00")
        report = response.balances_report
        assert report.unready_balance.amount == Decimal("240.00")

    @pytest.mark.asyncio
    async def test_first_page_error_is_raised(self, adapter, fake_bank):
        fake_bank.add("GET", TRANSACTIONS_PATH, status=429)

        with pytest.raises(InvalidConsentError) as exc_info:
            await adapter.list_transactions(_transactions_request())

        assert exc_info.value.reason == "ACCESS_EXCEEDED"

    @pytest.mark.asyncio
    async def test_later_page_error_returns_partial_report(self, adapter, fake_bank):
        fake_bank.add(
            "GET",
            TRANSACTIONS_PATH,
            json={
                "transactions": {
                    "booked": [_transaction("T2", "1.00", 2)],
                    "_links": {"next": {"href": f"{TRANSACTIONS_PATH}?scrollRef=x"}},
                },
            },
        ).add("GET", TRANSACTIONS_PATH, status=500)

        response = await adapter.list_transactions(_transactions_request())

        assert [b.external_id for b in response.bookings] == ["T2"]

    @pytest.mark.asyncio
    async def test_raw_report_without_parser_is_protocol_error(
        self,
        adapter,
        fake_bank,
    ):
        fake_bank.add(
            "GET",
            TRANSACTIONS_PATH,
            text="<Document/>",
            headers={"content-type": "application/xml"},
        )

        with pytest.raises(ProtocolError, match="No parser"):
            await adapter.list_transactions(_transactions_request())

    @pytest.mark.asyncio
    async def test_raw_report_is_handed_to_parser(self, rest_client, fake_bank):
        parser = Mock(spec=TransactionReportParser)
        parser.parse.return_value = TransactionPage(
            bookings=[Booking(amount=Decimal("3.00"), booking_date=date(2025, 1, 3))],
        )
        adapter = Xs2aAdapter(client=rest_client, report_parser=parser)
        fake_bank.add(
            "GET",
            TRANSACTIONS_PATH,
            text=":20:STARTUMS",
            headers={"content-type": "text/plain"},
        )

        response = await adapter.list_transactions(_transactions_request())

        report, media_type = parser.parse.call_args.args
        assert report == ":20:STARTUMS"
        assert media_type.startswith("text/plain")
        assert response.bookings[0].amount == Decimal("3.00")

    @pytest.mark.asyncio
    async def test_default_date_range(self, adapter, fake_bank, monkeypatch):
        monkeypatch.setenv("TRANSACTIONS_DEFAULT_LOOKBACK_DAYS", "30")
        fake_bank.add("GET", TRANSACTIONS_PATH, json={"transactions": {}})

        await adapter.list_transactions(
            TransactionsRequest(bank_code="37040044", account=_account()),
        )

        params = fake_bank.requests[0].url.params
        date_from = date.fromisoformat(params["dateFrom"])
        date_to = date.fromisoformat(params["dateTo"])
        assert (date_to - date_from).days == 30


# ═══════════════════════════════════════════════════════════════
#                     Consent status
# ═══════════════════════════════════════════════════════════════

CONSENT_REJECTED = {
    "tppMessages": [
        {"category": "ERROR", "code": "CONSENT_INVALID", "text": "Consent invalid"},
    ],
}
CONSENT_STATUS_PATH = "/v1/consents/consent-1/status"
CONSENT_AUTHORISATIONS = "/v1/consents/consent-1/authorisations"


class TestUnauthorisedConsent:
    """A rejected consent still awaiting SCA starts its authorisation."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("consent_status", ["received", "partiallyAuthorised"])
    async def test_unauthorised_consent_requires_authorisation(
        self,
        adapter,
        fake_bank,
        consent_status,
    ):
        fake_bank.add("GET", TRANSACTIONS_PATH, status=401, json=CONSENT_REJECTED)
        fake_bank.add(
            "GET",
            CONSENT_STATUS_PATH,
            json={"consentStatus": consent_status},
        )
        fake_bank.add(
            "POST",
            CONSENT_AUTHORISATIONS,
            status=201,
            json={"authorisationId": "auth-9", "scaStatus": "received"},
        )

        with pytest.raises(ConsentAuthorisationRequiredError) as exc_info:
            await adapter.list_transactions(_transactions_request())

        authorisation = exc_info.value.authorisation
        assert authorisation.consent_id == "consent-1"
        assert authorisation.authorisation_id == "auth-9"
        assert authorisation.sca_status == ScaStatus.STARTED
        assert exc_info.value.details["authorisation_id"] == "auth-9"
        assert isinstance(exc_info.value.__cause__, InvalidConsentError)
        status_request = fake_bank.last("GET", CONSENT_STATUS_PATH)
        assert status_request.headers["X-GTW-Bank-Code"] == "37040044"

    @pytest.mark.asyncio
    async def test_discovery_with_unauthorised_consent(self, adapter, fake_bank):
        fake_bank.add("GET", ACCOUNTS_PATH, status=403, json=CONSENT_REJECTED)
        fake_bank.add("GET", CONSENT_STATUS_PATH, json={"consentStatus": "received"})
        fake_bank.add(
            "POST",
            CONSENT_AUTHORISATIONS,
            status=201,
            json={"authorisationId": "auth-9", "scaStatus": "started"},
        )

        with pytest.raises(ConsentAuthorisationRequiredError):
            await adapter.discover_accounts(
                AccountsRequest(bank_code="37040044", consent_id="consent-1"),
            )

    @pytest.mark.asyncio
    async def test_dead_consent_stays_invalid(self, adapter, fake_bank):
        fake_bank.add("GET", TRANSACTIONS_PATH, status=401, json=CONSENT_REJECTED)
        fake_bank.add("GET", CONSENT_STATUS_PATH, json={"consentStatus": "rejected"})

        with pytest.raises(InvalidConsentError) as exc_info:
            await adapter.list_transactions(_transactions_request())

        assert exc_info.value.reason == "CONSENT_INVALID"
        assert "POST" not in {r.method for r in fake_bank.requests}

    @pytest.mark.asyncio
    async def test_failed_status_lookup_keeps_original_error(self, adapter, fake_bank):
        fake_bank.add("GET", TRANSACTIONS_PATH, status=401, json=CONSENT_REJECTED)
        fake_bank.add("GET", CONSENT_STATUS_PATH, status=500, json={})

        with pytest.raises(InvalidConsentError):
            await adapter.list_transactions(_transactions_request())

    @pytest.mark.asyncio
    async def test_other_consent_errors_skip_status_lookup(self, adapter, fake_bank):
        fake_bank.add(
            "GET",
            TRANSACTIONS_PATH,
            status=401,
            json={"tppMessages": [{"code": "CONSENT_EXPIRED"}]},
        )

        with pytest.raises(InvalidConsentError) as exc_info:
            await adapter.list_transactions(_transactions_request())

        assert exc_info.value.reason == "CONSENT_EXPIRED"
        assert CONSENT_STATUS_PATH not in fake_bank.paths()


# ═══════════════════════════════════════════════════════════════
#                     Balances
# ═══════════════════════════════════════════════════════════════


class TestListBalances:
    @pytest.mark.asyncio
    async def test_balances_report(self, adapter, fake_bank):
        fake_bank.add(
            "GET",
            "/v1/accounts/res-1/balances",
            json={
                "balances": [
                    {
                        "balanceType": "interimAvailable",
                        "balanceAmount": {"currency": "EUR", "amount": "12.00"},
                    },
                    {
                        "balanceType": "closingBooked",
                        "balanceAmount": {"currency": "EUR", "amount": "10.00"},
                        "referenceDate": "2025-01-31",
                    },
                ],
            },
        )

        response = await adapter.list_balances(
            BalancesRequest(bank_code="37040044", account=_account()),
        )

        ready = response.balances_report.ready_balance
        assert ready.amount == Decimal("10.00")
        assert ready.reference_date == date(2025, 1, 31)
        assert response.balances_report.unready_balance is None


# ═══════════════════════════════════════════════════════════════
#                     Payments
# ═══════════════════════════════════════════════════════════════


def _payment_request():
    return PaymentRequest(
        bank_code="37040044",
        payment=SinglePayment(
            debtor_iban=IBAN,
            creditor_iban="DE02120300000000202051",
            creditor_name="Jane Doe",
            amount=Decimal("12.50"),
            purpose="Rent",
            requested_execution_date=date(2025, 2, 1),
        ),
    )


class TestExecutePayment:
    """Payments start an authorisation when the bank asks for SCA."""

    @pytest.mark.asyncio
    async def test_payment_requiring_sca(self, adapter, fake_bank):
        fake_bank.add(
            "POST",
            "/v1/payments/sepa-credit-transfers",
            status=201,
            json={
                "transactionStatus": "RCVD",
                "paymentId": "pay-1",
                "_links": {
                    "startAuthorisationWithPsuAuthentication": {
                        "href": PAYMENT_AUTHORISATIONS,
                    },
                },
            },
        ).add(
            "POST",
            PAYMENT_AUTHORISATIONS,
            status=201,
            json={"authorisationId": "auth-1", "scaStatus": "received"},
        )

        response = await adapter.execute_payment(_payment_request())

        assert response.payment_id == "pay-1"
        assert response.requires_sca
        authorisation = response.authorisation
        assert authorisation.consent_id == "pay-1"
        assert authorisation.authorisation_id == "auth-1"
        assert authorisation.sca_status == ScaStatus.STARTED
        assert authorisation.bank_api_consent_data["resource_path"] == (
            "payments/sepa-credit-transfers/pay-1"
        )

        body = fake_bank.body(
            fake_bank.last("POST", "/v1/payments/sepa-credit-transfers"),
        )
        assert body["instructedAmount"] == {"currency": "EUR", "amount": "12.50"}
        assert body["creditorName"] == "Jane Doe"
        assert body["remittanceInformationUnstructured"] == "Rent"
        assert body["requestedExecutionDate"] == "2025-02-01"

    @pytest.mark.asyncio
    async def test_failed_authorisation_start_reports_payment_id(
        self,
        adapter,
        fake_bank,
    ):
        fake_bank.add(
            "POST",
            "/v1/payments/sepa-credit-transfers",
            status=201,
            json={
                "transactionStatus": "RCVD",
                "paymentId": "pay-1",
                "_links": {"startAuthorisation": {"href": PAYMENT_AUTHORISATIONS}},
            },
        ).add("POST", PAYMENT_AUTHORISATIONS, status=500, json={"tppMessages": []})

        with pytest.raises(ProtocolError) as exc_info:
            await adapter.execute_payment(_payment_request())

        details = exc_info.value.details
        assert details["payment_id"] == "pay-1"
        assert details["transaction_status"] == "RCVD"
        assert details["resource_path"] == "payments/sepa-credit-transfers/pay-1"

    @pytest.mark.asyncio
    async def test_payment_without_sca(self, adapter, fake_bank):
        fake_bank.add(
            "POST",
            "/v1/payments/sepa-credit-transfers",
            status=201,
            json={"transactionStatus": "ACSC", "paymentId": "pay-2"},
        )

        response = await adapter.execute_payment(_payment_request())

        assert response.transaction_status == "ACSC"
        assert response.authorisation is None
        assert not response.requires_sca


BULK_PATH = "/v1/bulk-payments/sepa-credit-transfers"
BULK_AUTHORISATIONS = f"{BULK_PATH}/bulk-1/authorisations"


def _bulk_request(batch_booking=None):
    transfers = [
        SinglePayment(
            debtor_iban=IBAN,
            creditor_iban="DE02120300000000202051",
            creditor_name=name,
            amount=Decimal(amount),
            purpose=f"Invoice {name}",
            requested_execution_date=date(2025, 2, 1),
        )
        for name, amount in [("Jane Doe", "12.50"), ("John Roe", "7.00")]
    ]
    return PaymentRequest(
        bank_code="37040044",
        payment=BulkPayment(payments=transfers, batch_booking=batch_booking),
    )


class TestExecuteBulkPayment:
    """Bulk payments use the bulk resource and the same SCA dialog."""

    @pytest.mark.asyncio
    async def test_bulk_payment_body(self, adapter, fake_bank):
        fake_bank.add(
            "POST",
            BULK_PATH,
            status=201,
            json={"transactionStatus": "ACTC", "paymentId": "bulk-1"},
        )

        response = await adapter.execute_payment(_bulk_request(batch_booking=True))

        assert response.payment_id == "bulk-1"
        assert not response.requires_sca
        body = fake_bank.body(fake_bank.last("POST", BULK_PATH))
        assert body["debtorAccount"] == {"iban": IBAN}
        assert body["batchBookingPreferred"] is True
        assert body["requestedExecutionDate"] == "2025-02-01"
        assert [p["creditorName"] for p in body["payments"]] == [
            "Jane Doe",
            "John Roe",
        ]
        assert body["payments"][1]["instructedAmount"] == {
            "currency": "EUR",
            "amount": "7.00",
        }
        assert "debtorAccount" not in body["payments"][0]

    @pytest.mark.asyncio
    async def test_batch_booking_left_to_bank(self, adapter, fake_bank):
        fake_bank.add("POST", BULK_PATH, status=201, json={"paymentId": "bulk-1"})

        await adapter.execute_payment(_bulk_request())

        body = fake_bank.body(fake_bank.last("POST", BULK_PATH))
        assert "batchBookingPreferred" not in body

    @pytest.mark.asyncio
    async def test_bulk_payment_authorised_through_sca(self, adapter, fake_bank):
        fake_bank.add(
            "POST",
            BULK_PATH,
            status=201,
            json={
                "transactionStatus": "RCVD",
                "paymentId": "bulk-1",
                "_links": {"startAuthorisation": {"href": BULK_AUTHORISATIONS}},
            },
        ).add(
            "POST",
            BULK_AUTHORISATIONS,
            status=201,
            json={"authorisationId": "auth-1", "scaStatus": "started"},
        ).add(
            "PUT",
            f"{BULK_AUTHORISATIONS}/auth-1",
            json={
                "scaStatus": "scaMethodSelected",
                "chosenScaMethod": {
                    "authenticationType": "DECOUPLED",
                    "authenticationMethodId": "944",
                },
            },
        ).add("GET", f"{BULK_AUTHORISATIONS}/auth-1", json={"scaStatus": "finalised"})

        response = await adapter.execute_payment(_bulk_request())

        assert response.authorisation.bank_api_consent_data["resource_path"] == (
            "bulk-payments/sepa-credit-transfers/bulk-1"
        )
        machine = ScaAuthorisationStateMachine.for_adapter(
            adapter,
            response.authorisation,
        )
        await machine.update_psu_authentication(PsuAuthenticationRequest())
        result = await machine.authorise_transaction(TransactionAuthorisationRequest())

        assert result.sca_status == ScaStatus.FINALISED
        assert result.consent_id == "bulk-1"


class TestUnsupportedOperations:
    @pytest.mark.asyncio
    async def test_standing_orders_make_no_transport_call(self, adapter, fake_bank):
        with pytest.raises(UnsupportedOperationError) as exc_info:
            await adapter.list_standing_orders(
                StandingOrdersRequest(bank_code="37040044", account=_account()),
            )

        assert exc_info.value.operation == "list_standing_orders"
        assert fake_bank.requests == []
