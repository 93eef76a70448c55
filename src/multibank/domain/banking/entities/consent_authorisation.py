"""Consent authorisation entity tracking one SCA dialog."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import uuid4

from multibank.domain.banking.exceptions import InvalidStateError
from multibank.domain.banking.value_objects.bank_api import BankApi
from multibank.domain.banking.value_objects.sca import (
    ScaChallenge,
    ScaMethod,
    ScaStatus,
    ScaStepResult,
)
from multibank.domain.shared.time import utc_now


class ConsentAuthorisation:
    """
    One authorisation dialog within a consent (or a payment).

    Created in STARTED when the consent is first authorised and mutated by
    every SCA step. Once a terminal status is reached the entity no longer
    accepts changes.
    """

    def __init__(  # noqa: PLR0913
        self,
        consent_id: str,
        bank_api: BankApi,
        authorisation_id: str | None = None,
        sca_status: ScaStatus = ScaStatus.STARTED,
        bank_api_consent_data: dict[str, Any] | None = None,
        sca_methods: list[ScaMethod] | None = None,
        selected_method: ScaMethod | None = None,
        challenge: ScaChallenge | None = None,
        psu_message: str | None = None,
    ):
        if not consent_id:
            msg = "Consent id cannot be empty"
            raise ValueError(msg)

        self._consent_id = consent_id
        self._authorisation_id = authorisation_id or str(uuid4())
        self._bank_api = bank_api
        self._sca_status = sca_status
        self._bank_api_consent_data = dict(bank_api_consent_data or {})
        self._sca_methods = list(sca_methods or [])
        self._selected_method = selected_method
        self._challenge = challenge
        self._psu_message = psu_message
        self._created_at = utc_now()
        self._updated_at = self._created_at

    @property
    def consent_id(self) -> str:
        return self._consent_id

    @property
    def authorisation_id(self) -> str:
        return self._authorisation_id

    @property
    def bank_api(self) -> BankApi:
        return self._bank_api

    @property
    def sca_status(self) -> ScaStatus:
        return self._sca_status

    @property
    def bank_api_consent_data(self) -> dict[str, Any]:
        return dict(self._bank_api_consent_data)

    @property
    def sca_methods(self) -> list[ScaMethod]:
        return list(self._sca_methods)

    @property
    def selected_method(self) -> ScaMethod | None:
        return self._selected_method

    @property
    def challenge(self) -> ScaChallenge | None:
        return self._challenge

    @property
    def psu_message(self) -> str | None:
        return self._psu_message

    @property
    def is_terminal(self) -> bool:
        return self._sca_status.is_terminal

    @property
    def updated_at(self) -> datetime:
        return self._updated_at

    def apply(self, result: ScaStepResult) -> None:
        """Record the outcome of one SCA step."""
        if self.is_terminal:
            msg = (
                f"Authorisation {self._authorisation_id} is already "
                f"{self._sca_status.value}"
            )
            raise InvalidStateError(msg, state=self._sca_status.value)

        self._sca_status = result.sca_status
        if result.sca_methods:
            self._sca_methods = list(result.sca_methods)
        if result.selected_method is not None:
            self._selected_method = result.selected_method
        self._challenge = result.challenge
        self._psu_message = result.psu_message
        if result.bank_api_consent_data is not None:
            self._bank_api_consent_data.update(result.bank_api_consent_data)
        self._updated_at = utc_now()

    def find_method(self, method_id: str) -> ScaMethod | None:
        for method in self._sca_methods:
            if method.id == method_id:
                return method
        return None

    def __repr__(self) -> str:
        return (
            f"ConsentAuthorisation(consent_id={self._consent_id!r}, "
            f"authorisation_id={self._authorisation_id!r}, "
            f"bank_api={self._bank_api.value!r}, "
            f"sca_status={self._sca_status.value!r})"
        )
