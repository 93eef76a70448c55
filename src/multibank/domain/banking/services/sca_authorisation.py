"""SCA authorisation state machine.

Drives the multi-step dialog a bank requires to authorise a consent or a
payment and exposes one uniform status model for all protocols:

    STARTED -> PSU_AUTHENTICATED -> SCA_METHOD_SELECTED -> FINALISED

FAILED and EXEMPTED are terminal and reachable from every non-terminal
status. Which operation is valid next is derived from the current status
only (see ``next_operations``); callers must not guess.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Awaitable, Callable

from multibank.domain.banking.exceptions import (
    BankingError,
    InvalidStateError,
    ProtocolError,
)
from multibank.domain.banking.value_objects.responses import UpdateAuthResponse
from multibank.domain.banking.value_objects.sca import ScaStatus

if TYPE_CHECKING:
    from multibank.domain.banking.entities.consent_authorisation import (
        ConsentAuthorisation,
    )
    from multibank.domain.banking.ports.banking_protocol_port import (
        BankingProtocolAdapter,
    )
    from multibank.domain.banking.ports.sca_dialog_port import ScaDialogPort
    from multibank.domain.banking.value_objects.requests import (
        BankingRequest,
        PsuAuthenticationRequest,
        SelectScaMethodRequest,
        TransactionAuthorisationRequest,
    )
    from multibank.domain.banking.value_objects.sca import ScaStepResult

logger = logging.getLogger(__name__)


class ScaOperation(str, Enum):
    """Uniform names of the SCA dialog operations."""

    UPDATE_PSU_AUTHENTICATION = "updatePsuAuthentication"
    SELECT_PSU_AUTHENTICATION_METHOD = "selectPsuAuthenticationMethod"
    TRANSACTION_AUTHORISATION = "transactionAuthorisation"
    GET_AUTHORISATION_STATUS = "getAuthorisationStatus"


def next_operations(
    status: ScaStatus,
    bundles_sca_methods: bool = False,
) -> frozenset[ScaOperation]:
    """Operations a caller may invoke in ``status``.

    The status query is always allowed. In PSU_AUTHENTICATED, protocols
    that bundle the SCA methods with the authentication challenge take the
    method choice through a repeated authentication step instead of an
    explicit selection.
    """
    operations = {ScaOperation.GET_AUTHORISATION_STATUS}

    if status == ScaStatus.STARTED:
        operations.add(ScaOperation.UPDATE_PSU_AUTHENTICATION)
    elif status == ScaStatus.PSU_AUTHENTICATED:
        if bundles_sca_methods:
            operations.add(ScaOperation.UPDATE_PSU_AUTHENTICATION)
        else:
            operations.add(ScaOperation.SELECT_PSU_AUTHENTICATION_METHOD)
    elif status == ScaStatus.SCA_METHOD_SELECTED:
        operations.add(ScaOperation.TRANSACTION_AUTHORISATION)

    return frozenset(operations)


class ScaAuthorisationStateMachine:
    """
    Request-scoped driver for one ConsentAuthorisation.

    Every mutating step checks that the current status allows it, calls the
    protocol's ScaDialogPort, verifies the bank-reported status is a legal
    transition and records it on the authorisation. The status query never
    calls the bank and never changes state.
    """

    def __init__(
        self,
        dialog: ScaDialogPort,
        authorisation: ConsentAuthorisation,
        bundles_sca_methods: bool = False,
    ):
        self._dialog = dialog
        self._authorisation = authorisation
        self._bundles_sca_methods = bundles_sca_methods

    @classmethod
    def for_adapter(
        cls,
        adapter: BankingProtocolAdapter,
        authorisation: ConsentAuthorisation,
    ) -> ScaAuthorisationStateMachine:
        if authorisation.bank_api != adapter.bank_api:
            msg = (
                f"Authorisation belongs to {authorisation.bank_api.value}, "
                f"not {adapter.bank_api.value}"
            )
            raise InvalidStateError(msg, state=authorisation.sca_status.value)
        return cls(
            dialog=adapter.sca_dialog(),
            authorisation=authorisation,
            bundles_sca_methods=adapter.bundles_sca_methods,
        )

    @classmethod
    async def start(
        cls,
        adapter: BankingProtocolAdapter,
        consent_id: str,
        request: BankingRequest,
    ) -> ScaAuthorisationStateMachine:
        """Open a new authorisation for ``consent_id`` at the bank."""
        dialog = adapter.sca_dialog()
        authorisation = await cls._call_bank(
            lambda: dialog.start_authorisation(consent_id, request),
        )
        logger.info(
            "Started %s authorisation %s for consent %s",
            adapter.bank_api.value,
            authorisation.authorisation_id,
            consent_id,
        )
        return cls(dialog, authorisation, adapter.bundles_sca_methods)

    @property
    def authorisation(self) -> ConsentAuthorisation:
        return self._authorisation

    @property
    def status(self) -> ScaStatus:
        return self._authorisation.sca_status

    def allowed_operations(self) -> frozenset[ScaOperation]:
        return next_operations(self.status, self._bundles_sca_methods)

    def get_authorisation_status(self) -> UpdateAuthResponse:
        return UpdateAuthResponse.from_authorisation(self._authorisation)

    async def update_psu_authentication(
        self,
        request: PsuAuthenticationRequest,
    ) -> UpdateAuthResponse:
        return await self._step(
            ScaOperation.UPDATE_PSU_AUTHENTICATION,
            lambda: self._dialog.update_psu_authentication(
                self._authorisation,
                request,
            ),
        )

    async def select_psu_authentication_method(
        self,
        request: SelectScaMethodRequest,
    ) -> UpdateAuthResponse:
        return await self._step(
            ScaOperation.SELECT_PSU_AUTHENTICATION_METHOD,
            lambda: self._dialog.select_psu_authentication_method(
                self._authorisation,
                request,
            ),
        )

    async def authorise_transaction(
        self,
        request: TransactionAuthorisationRequest,
    ) -> UpdateAuthResponse:
        return await self._step(
            ScaOperation.TRANSACTION_AUTHORISATION,
            lambda: self._dialog.authorise_transaction(self._authorisation, request),
        )

    async def _step(
        self,
        operation: ScaOperation,
        call: Callable[[], Awaitable[ScaStepResult]],
    ) -> UpdateAuthResponse:
        self._ensure_allowed(operation)

        current = self.status
        result = await self._call_bank(call)

        if not current.can_move_to(result.sca_status):
            msg = (
                f"Bank reported SCA status {result.sca_status.value} "
                f"after {current.value}"
            )
            raise ProtocolError(msg, details={"operation": operation.value})

        self._authorisation.apply(result)
        logger.info(
            "Authorisation %s: %s -> %s (%s)",
            self._authorisation.authorisation_id,
            current.value,
            result.sca_status.value,
            operation.value,
        )
        return UpdateAuthResponse.from_authorisation(self._authorisation)

    def _ensure_allowed(self, operation: ScaOperation) -> None:
        if operation in self.allowed_operations():
            return
        msg = (
            f"Operation '{operation.value}' is not allowed "
            f"in status {self.status.value}"
        )
        raise InvalidStateError(msg, state=self.status.value)

    @staticmethod
    async def _call_bank(call: Callable[[], Awaitable]):
        try:
            return await call()
        except BankingError:
            raise
        except Exception as e:
            logger.exception("SCA dialog call failed")
            msg = f"SCA dialog failed: {e}"
            raise ProtocolError(msg) from e
