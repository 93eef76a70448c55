"""XS2A (Berlin Group) SCA dialog.

Consent and payment authorisations share one dialog; they only differ in
the resource path the authorisation sub-resource hangs off:

    /v1/consents/{consentId}/authorisations
    /v1/payments/{product}/{paymentId}/authorisations
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from multibank.domain.banking.entities import ConsentAuthorisation
from multibank.domain.banking.exceptions import BankingError, ProtocolError
from multibank.domain.banking.ports import ScaDialogPort
from multibank.domain.banking.value_objects import BankApi, ScaStatus
from multibank.infrastructure.banking.xs2a.mapper import (
    to_sca_status,
    to_sca_step_result,
)
from multibank.infrastructure.banking.xs2a.page_fetcher import (
    MAPPING_ERRORS,
    xs2a_headers,
)

if TYPE_CHECKING:
    from multibank.domain.banking.value_objects import (
        BankingRequest,
        PsuAuthenticationRequest,
        ScaStepResult,
        SelectScaMethodRequest,
        TransactionAuthorisationRequest,
    )
    from multibank.infrastructure.banking.rest_client import BankingRestClient

logger = logging.getLogger(__name__)

RESOURCE_PATH = "resource_path"


class Xs2aScaDialog(ScaDialogPort):
    """SCA calls against the XS2A adapter service.

    The resource path and the gateway headers are kept in the
    authorisation's ``bank_api_consent_data`` so later steps can be
    replayed without the original request.
    """

    def __init__(self, client: BankingRestClient):
        self._client = client

    async def start_authorisation(
        self,
        consent_id: str,
        request: BankingRequest,
    ) -> ConsentAuthorisation:
        resource_path = request.session_data.get(RESOURCE_PATH) or (
            f"consents/{consent_id}"
        )
        headers = xs2a_headers(
            request.effective_bank_code,
            session_data=request.session_data,
        )

        response = await self._client.post(
            f"/v1/{resource_path}/authorisations",
            json={},
            headers=headers,
        )
        body = self._client.json(response)

        return ConsentAuthorisation(
            consent_id=consent_id,
            bank_api=BankApi.XS2A,
            authorisation_id=body.get("authorisationId"),
            sca_status=to_sca_status(body.get("scaStatus") or "started"),
            bank_api_consent_data={
                RESOURCE_PATH: resource_path,
                "headers": headers,
            },
        )

    async def update_psu_authentication(
        self,
        authorisation: ConsentAuthorisation,
        request: PsuAuthenticationRequest,
    ) -> ScaStepResult:
        body: dict[str, Any] = {}
        if request.password is not None:
            body["psuData"] = {"password": request.password.get_secret_value()}

        headers = {}
        if request.psu_id:
            headers["PSU-ID"] = request.psu_id

        result = await self._update(authorisation, body, headers)

        # Banks offering a single SCA method may still report
        # psuAuthenticated; the only choice is made right away.
        if (
            result.sca_status == ScaStatus.PSU_AUTHENTICATED
            and len(result.sca_methods) == 1
        ):
            method = result.sca_methods[0]
            logger.info(
                "Only one SCA method offered for authorisation %s, selecting %s",
                authorisation.authorisation_id,
                method.id,
            )
            try:
                selected = await self._update(
                    authorisation,
                    {"authenticationMethodId": method.id},
                )
            except BankingError as e:
                # The PSU is authenticated already; leave the choice to the
                # caller instead of losing the offered method.
                logger.warning(
                    "Selecting SCA method %s for authorisation %s failed: %s",
                    method.id,
                    authorisation.authorisation_id,
                    e,
                )
                return result
            return selected.model_copy(
                update={
                    "sca_methods": selected.sca_methods or result.sca_methods,
                    "selected_method": selected.selected_method or method,
                },
            )

        return result

    async def select_psu_authentication_method(
        self,
        authorisation: ConsentAuthorisation,
        request: SelectScaMethodRequest,
    ) -> ScaStepResult:
        result = await self._update(
            authorisation,
            {"authenticationMethodId": request.sca_method_id},
        )
        if result.selected_method is None:
            method = authorisation.find_method(request.sca_method_id)
            if method is not None:
                result = result.model_copy(update={"selected_method": method})
        return result

    async def authorise_transaction(
        self,
        authorisation: ConsentAuthorisation,
        request: TransactionAuthorisationRequest,
    ) -> ScaStepResult:
        # Decoupled (app-based) methods have no TAN; the bank is asked for
        # the current status instead.
        if request.sca_authentication_data is None:
            response = await self._client.get(
                self._authorisation_path(authorisation),
                headers=self._headers(authorisation),
            )
            return self._step_result(self._client.json(response))

        return await self._update(
            authorisation,
            {"scaAuthenticationData": request.sca_authentication_data},
        )

    async def _update(
        self,
        authorisation: ConsentAuthorisation,
        body: dict[str, Any],
        extra_headers: dict[str, str] | None = None,
    ) -> ScaStepResult:
        headers = {**self._headers(authorisation), **(extra_headers or {})}
        response = await self._client.put(
            self._authorisation_path(authorisation),
            json=body,
            headers=headers,
        )
        return self._step_result(self._client.json(response))

    @staticmethod
    def _step_result(body: dict[str, Any]) -> ScaStepResult:
        try:
            return to_sca_step_result(body)
        except MAPPING_ERRORS as e:
            msg = f"Malformed SCA response: {e}"
            raise ProtocolError(msg) from e

    @staticmethod
    def _authorisation_path(authorisation: ConsentAuthorisation) -> str:
        data = authorisation.bank_api_consent_data
        resource_path = data.get(RESOURCE_PATH) or (
            f"consents/{authorisation.consent_id}"
        )
        return f"/v1/{resource_path}/authorisations/{authorisation.authorisation_id}"

    @staticmethod
    def _headers(authorisation: ConsentAuthorisation) -> dict[str, str]:
        return dict(authorisation.bank_api_consent_data.get("headers") or {})
