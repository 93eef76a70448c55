"""Mapping between Berlin Group (XS2A) JSON and the domain model."""

from __future__ import annotations

import base64
import binascii
import logging
from datetime import date
from decimal import Decimal
from typing import Any

from multibank.domain.banking.exceptions import ProtocolError
from multibank.domain.banking.value_objects import (
    Balance,
    BalanceType,
    BankAccount,
    BankApi,
    Booking,
    BulkPayment,
    ScaChallenge,
    ScaMethod,
    ScaMethodType,
    ScaStatus,
    ScaStepResult,
    SinglePayment,
)
from multibank.infrastructure.banking.pagination import TransactionPage

logger = logging.getLogger(__name__)

_SCA_STATUS = {
    "received": ScaStatus.STARTED,
    "started": ScaStatus.STARTED,
    "psuIdentified": ScaStatus.STARTED,
    "psuAuthenticated": ScaStatus.PSU_AUTHENTICATED,
    "scaMethodSelected": ScaStatus.SCA_METHOD_SELECTED,
    "unconfirmed": ScaStatus.SCA_METHOD_SELECTED,
    "finalised": ScaStatus.FINALISED,
    "failed": ScaStatus.FAILED,
    "exempted": ScaStatus.EXEMPTED,
}

_METHOD_TYPES = {
    "SMS_OTP": ScaMethodType.SMS_OTP,
    "CHIP_OTP": ScaMethodType.CHIP_OTP,
    "PHOTO_OTP": ScaMethodType.PHOTO_OTP,
    "PUSH_OTP": ScaMethodType.PUSH_OTP,
    "SMTP_OTP": ScaMethodType.MANUAL,
    "DECOUPLED": ScaMethodType.DECOUPLED,
}


def _parse_date(value: str | None) -> date | None:
    return date.fromisoformat(value[:10]) if value else None


def _amount(value: dict[str, Any]) -> tuple[Decimal, str]:
    return Decimal(str(value["amount"])), value.get("currency") or "EUR"


# =============================================================================
# Accounts, bookings and balances
# =============================================================================


def to_bank_account(details: dict[str, Any]) -> BankAccount:
    account = BankAccount(
        iban=details["iban"],
        currency=details.get("currency") or "EUR",
        name=details.get("name"),
        owner_name=details.get("ownerName"),
        product=details.get("product"),
        bic=details.get("bic"),
    )
    resource_id = details.get("resourceId")
    if resource_id:
        account = account.with_external_id(BankApi.XS2A, resource_id)
    return account


def to_bank_accounts(body: dict[str, Any]) -> list[BankAccount]:
    accounts = []
    for details in body.get("accounts") or []:
        if not details.get("iban"):
            logger.warning(
                "Skipping account %s without IBAN",
                details.get("resourceId"),
            )
            continue
        accounts.append(to_bank_account(details))
    return accounts


def to_booking(transaction: dict[str, Any]) -> Booking:
    amount, currency = _amount(transaction["transactionAmount"])

    # The counterparty is the creditor of outgoing and the debtor of
    # incoming payments.
    if amount < 0:
        name = transaction.get("creditorName")
        counterparty_account = transaction.get("creditorAccount") or {}
    else:
        name = transaction.get("debtorName")
        counterparty_account = transaction.get("debtorAccount") or {}

    purpose = transaction.get("remittanceInformationUnstructured")
    if not purpose and transaction.get("remittanceInformationUnstructuredArray"):
        purpose = " ".join(transaction["remittanceInformationUnstructuredArray"])

    transaction_id = transaction.get("transactionId")
    return Booking(
        amount=amount,
        currency=currency,
        booking_date=_parse_date(transaction.get("bookingDate")),
        value_date=_parse_date(transaction.get("valueDate")),
        counterparty_iban=counterparty_account.get("iban"),
        counterparty_name=name,
        purpose=purpose,
        external_id=transaction_id,
        stable_id=bool(transaction_id),
    )


def to_balance(balance: dict[str, Any]) -> Balance:
    amount, currency = _amount(balance["balanceAmount"])
    return Balance(
        amount=amount,
        currency=currency,
        balance_type=BalanceType.parse(balance.get("balanceType")),
        reference_date=_parse_date(balance.get("referenceDate")),
    )


def to_links(links: dict[str, Any] | None) -> dict[str, str]:
    """Flatten ``{"next": {"href": ...}}`` into ``{"next": ...}``."""
    result = {}
    for name, link in (links or {}).items():
        href = link.get("href") if isinstance(link, dict) else link
        if href:
            result[name] = href
    return result


def to_transaction_page(body: dict[str, Any]) -> TransactionPage:
    """
    Parse one ``GET /accounts/{id}/transactions`` JSON page.

    Pagination links usually sit on the ``transactions`` report, some
    banks put them on the top level; both are merged. ``balances`` stays
    None when the response has no balances section.
    """
    report = body.get("transactions") or {}
    bookings = [to_booking(t) for t in report.get("booked") or []]

    balances = None
    if body.get("balances") is not None:
        balances = [to_balance(b) for b in body["balances"]]

    links = to_links(body.get("_links"))
    links.update(to_links(report.get("_links")))

    return TransactionPage(bookings=bookings, balances=balances, links=links)


# =============================================================================
# SCA
# =============================================================================


def to_sca_status(value: str | None) -> ScaStatus:
    try:
        return _SCA_STATUS[value]
    except KeyError:
        msg = f"Unknown SCA status '{value}'"
        raise ProtocolError(msg) from None


def to_sca_method(method: dict[str, Any]) -> ScaMethod:
    authentication_type = method.get("authenticationType") or ""
    method_type = _METHOD_TYPES.get(authentication_type, ScaMethodType.UNKNOWN)
    return ScaMethod(
        id=method["authenticationMethodId"],
        name=method.get("name") or authentication_type or "unknown",
        method_type=method_type,
        is_decoupled=method_type == ScaMethodType.DECOUPLED,
    )


def to_sca_challenge(body: dict[str, Any]) -> ScaChallenge | None:
    challenge = body.get("challengeData")
    if not challenge:
        return None

    image = None
    if challenge.get("image"):
        try:
            image = base64.b64decode(challenge["image"])
        except (binascii.Error, ValueError):
            logger.warning("Ignoring challenge image that is not valid base64")

    return ScaChallenge(
        text=challenge.get("additionalInformation") or body.get("psuMessage"),
        image=image,
        image_link=challenge.get("imageLink"),
        data=list(challenge.get("data") or []),
        otp_max_length=challenge.get("otpMaxLength"),
        otp_format=challenge.get("otpFormat"),
    )


def to_sca_step_result(body: dict[str, Any]) -> ScaStepResult:
    chosen = body.get("chosenScaMethod")
    return ScaStepResult(
        sca_status=to_sca_status(body.get("scaStatus")),
        sca_methods=[to_sca_method(m) for m in body.get("scaMethods") or []],
        selected_method=to_sca_method(chosen) if chosen else None,
        challenge=to_sca_challenge(body),
        psu_message=body.get("psuMessage"),
    )


# =============================================================================
# Payments
# =============================================================================


def to_payment_body(payment: SinglePayment) -> dict[str, Any]:
    body: dict[str, Any] = {
        "debtorAccount": {"iban": payment.debtor_iban},
        **_transfer(payment),
    }
    if payment.requested_execution_date:
        body["requestedExecutionDate"] = payment.requested_execution_date.isoformat()
    return body


def to_bulk_payment_body(bulk: BulkPayment) -> dict[str, Any]:
    """Bulk body: the debtor and the execution date sit on the bulk."""
    body: dict[str, Any] = {
        "debtorAccount": {"iban": bulk.debtor_iban},
        "payments": [_transfer(payment) for payment in bulk.payments],
    }
    if bulk.batch_booking is not None:
        body["batchBookingPreferred"] = bulk.batch_booking
    if bulk.requested_execution_date:
        body["requestedExecutionDate"] = bulk.requested_execution_date.isoformat()
    return body


def _transfer(payment: SinglePayment) -> dict[str, Any]:
    transfer: dict[str, Any] = {
        "instructedAmount": {
            "currency": payment.currency,
            "amount": str(payment.amount),
        },
        "creditorAccount": {"iban": payment.creditor_iban},
        "creditorName": payment.creditor_name,
    }
    if payment.creditor_bic:
        transfer["creditorAgent"] = payment.creditor_bic
    if payment.purpose:
        transfer["remittanceInformationUnstructured"] = payment.purpose
    return transfer
