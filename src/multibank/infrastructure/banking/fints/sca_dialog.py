"""FinTS SCA dialog.

FinTS reports the TAN methods a user may choose from as part of the PIN
check. The method choice is therefore made with a repeated authentication
step (carrying ``sca_method_id``) instead of a separate selection call.

geldstrom confirms TANs through decoupled app approval, polled while the
dialog is opened with the selected method.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from multibank.domain.banking.entities import ConsentAuthorisation
from multibank.domain.banking.exceptions import (
    InvalidPinError,
    ResourceNotFoundError,
    UnsupportedOperationError,
)
from multibank.domain.banking.ports import ScaDialogPort
from multibank.domain.banking.value_objects import (
    BankApi,
    BankCredentials,
    ScaChallenge,
    ScaStatus,
    ScaStepResult,
)
from multibank.infrastructure.banking.fints.client_factory import client_kwargs
from multibank.infrastructure.banking.fints.mapper import to_sca_method
from multibank.infrastructure.banking.fints.session import (
    map_fints_error,
    require_credentials,
    server_url_for,
)

if TYPE_CHECKING:
    from multibank.domain.banking.value_objects import (
        BankingRequest,
        PsuAuthenticationRequest,
        ScaMethod,
        SelectScaMethodRequest,
        TransactionAuthorisationRequest,
    )
    from multibank.infrastructure.banking.fints.client_factory import (
        FinTSClientFactory,
    )

logger = logging.getLogger(__name__)


class FinTSScaDialog(ScaDialogPort):
    """TAN method discovery and decoupled approval through geldstrom.

    The credentials of the dialog live in the authorisation's
    ``bank_api_consent_data`` for as long as the authorisation does.
    """

    def __init__(self, client_factory: FinTSClientFactory):
        self._client_factory = client_factory

    async def start_authorisation(
        self,
        consent_id: str,
        request: BankingRequest,
    ) -> ConsentAuthorisation:
        credentials = require_credentials(request)
        bank_code = request.effective_bank_code
        return ConsentAuthorisation(
            consent_id=consent_id,
            bank_api=BankApi.FINTS,
            bank_api_consent_data={
                "bank_code": bank_code,
                "server_url": server_url_for(credentials, bank_code),
                "login": credentials.login,
                "pin": credentials.pin,
            },
        )

    async def update_psu_authentication(
        self,
        authorisation: ConsentAuthorisation,
        request: PsuAuthenticationRequest,
    ) -> ScaStepResult:
        if authorisation.sca_status == ScaStatus.PSU_AUTHENTICATED:
            return self._choose_offered_method(authorisation, request.sca_method_id)

        data = authorisation.bank_api_consent_data
        login = request.psu_id or data["login"]
        pin = request.password or data["pin"]
        credentials = BankCredentials(login=login, pin=pin)

        logger.info("Querying TAN methods for BLZ %s", data["bank_code"])
        client = self._client_factory(
            **client_kwargs(data["bank_code"], credentials, data["server_url"]),
        )
        try:
            methods = [to_sca_method(m) for m in client.get_tan_methods()]
        except Exception as e:
            raise map_fints_error(e, "Querying TAN methods") from e

        logger.info(
            "Found %d TAN method(s) for BLZ %s",
            len(methods),
            data["bank_code"],
        )
        consent_data = {"login": login, "pin": pin}

        if not methods:
            return ScaStepResult(
                sca_status=ScaStatus.EXEMPTED,
                psu_message="No TAN required by the bank",
                bank_api_consent_data=consent_data,
            )

        chosen = self._preselected(methods, request.sca_method_id)
        if chosen is None and len(methods) == 1:
            chosen = methods[0]

        if chosen is None:
            return ScaStepResult(
                sca_status=ScaStatus.PSU_AUTHENTICATED,
                sca_methods=methods,
                bank_api_consent_data=consent_data,
            )

        return self._method_selected(methods, chosen, consent_data)

    async def select_psu_authentication_method(
        self,
        authorisation: ConsentAuthorisation,
        request: SelectScaMethodRequest,
    ) -> ScaStepResult:
        return self._choose_offered_method(authorisation, request.sca_method_id)

    async def authorise_transaction(
        self,
        authorisation: ConsentAuthorisation,
        request: TransactionAuthorisationRequest,  # NOQA: ARG002
    ) -> ScaStepResult:
        method = authorisation.selected_method
        if method is None or not method.is_decoupled:
            raise UnsupportedOperationError("manual TAN entry", BankApi.FINTS.value)

        data = authorisation.bank_api_consent_data
        credentials = BankCredentials(login=data["login"], pin=data["pin"])
        client = self._client_factory(
            **client_kwargs(data["bank_code"], credentials, data["server_url"]),
            tan_method=method.id,
        )

        logger.info("Waiting for approval with TAN method %s", method.id)
        try:
            client.connect()
        except Exception as e:
            error = map_fints_error(e, "TAN approval")
            if isinstance(error, InvalidPinError):
                raise error from e
            return ScaStepResult(
                sca_status=ScaStatus.FAILED,
                psu_message=error.message,
            )
        finally:
            client.disconnect()

        return ScaStepResult(
            sca_status=ScaStatus.FINALISED,
            bank_api_consent_data={"tan_method": method.id},
        )

    def _choose_offered_method(
        self,
        authorisation: ConsentAuthorisation,
        method_id: Optional[str],
    ) -> ScaStepResult:
        if not method_id:
            msg = "A TAN method must be chosen from the offered methods"
            raise ResourceNotFoundError(msg)

        method = authorisation.find_method(method_id)
        if method is None:
            msg = f"TAN method '{method_id}' was not offered by the bank"
            raise ResourceNotFoundError(msg, details={"sca_method_id": method_id})
        return self._method_selected(authorisation.sca_methods, method, None)

    @staticmethod
    def _preselected(
        methods: list[ScaMethod],
        method_id: Optional[str],
    ) -> Optional[ScaMethod]:
        for method in methods:
            if method_id and method.id == method_id:
                return method
        return None

    @staticmethod
    def _method_selected(
        methods: list[ScaMethod],
        method: ScaMethod,
        consent_data: Optional[dict[str, Any]],
    ) -> ScaStepResult:
        if method.is_decoupled:
            text = f"Please confirm the request in your {method.name} app"
        else:
            text = f"Please enter the TAN generated by {method.name}"
        return ScaStepResult(
            sca_status=ScaStatus.SCA_METHOD_SELECTED,
            sca_methods=methods,
            selected_method=method,
            challenge=ScaChallenge(text=text, otp_max_length=method.max_tan_length),
            bank_api_consent_data=consent_data,
        )
