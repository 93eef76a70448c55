"""FinTS adapter - Anti-Corruption Layer for the geldstrom FinTS client.

FinTS is a terminal protocol: a whole transaction report is delivered
within one dialog, so there is no pagination. The report still runs
through the same reconciliation as the paginated REST protocols.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Optional

from multibank.domain.banking.exceptions import InvalidAccountReferenceError
from multibank.domain.banking.ports import BankingProtocolAdapter
from multibank.domain.banking.services import BookingReconciliationService
from multibank.domain.banking.value_objects import (
    AccountInformationResponse,
    BalancesReport,
    BalancesResponse,
    BankApi,
    Capability,
    TransactionsResponse,
)
from multibank.domain.shared.iban import normalize_iban
from multibank.infrastructure.banking.date_range import resolve_date_range
from multibank.infrastructure.banking.fints.client_factory import (
    geldstrom_client_factory,
)
from multibank.infrastructure.banking.fints.mapper import (
    to_bank_accounts,
    to_bookings,
    to_closing_balance,
)
from multibank.infrastructure.banking.fints.sca_dialog import FinTSScaDialog
from multibank.infrastructure.banking.fints.session import (
    fints_session,
    map_fints_error,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from multibank.domain.banking.ports import ScaDialogPort
    from multibank.domain.banking.value_objects import (
        AccountsRequest,
        Balance,
        BalancesRequest,
        BankAccount,
        TransactionsRequest,
    )
    from multibank.infrastructure.banking.fints.client_factory import (
        FinTSClientFactory,
    )

logger = logging.getLogger(__name__)


class FinTSAdapter(BankingProtocolAdapter):
    """
    FinTS Adapter - Anti-Corruption Layer.

    Responsibilities:
    1. Open one geldstrom dialog per operation and always close it
    2. Translate geldstrom data structures to domain value objects
    3. Translate geldstrom errors into the banking error taxonomy

    FinTS delivers the available TAN methods together with the PIN check,
    so the explicit SCA method selection step never happens here.
    """

    bank_api = BankApi.FINTS
    capabilities = frozenset(
        {
            Capability.DISCOVER_ACCOUNTS,
            Capability.LIST_TRANSACTIONS,
            Capability.LIST_BALANCES,
            Capability.STRONG_CUSTOMER_AUTHORISATION,
        },
    )
    bundles_sca_methods = True

    def __init__(
        self,
        client_factory: Optional[FinTSClientFactory] = None,
        reconciliation: Optional[BookingReconciliationService] = None,
    ):
        self._client_factory = client_factory or geldstrom_client_factory
        self._reconciliation = reconciliation or BookingReconciliationService()

    async def _discover_accounts(
        self,
        request: AccountsRequest,
    ) -> AccountInformationResponse:
        with fints_session(self._client_factory, request) as (_, fints_accounts):
            accounts = to_bank_accounts(fints_accounts)

        logger.info(
            "Successfully connected to bank. Found %d accounts.",
            len(accounts),
        )
        return AccountInformationResponse(accounts=accounts)

    async def _list_transactions(
        self,
        request: TransactionsRequest,
        cancel_event: Optional[asyncio.Event],  # NOQA: ARG002
    ) -> TransactionsResponse:
        date_from, date_to = resolve_date_range(request.date_from, request.date_to)
        account = request.account

        with fints_session(self._client_factory, request) as (client, fints_accounts):
            fints_account = self._find_account(fints_accounts, account)

            logger.info(
                "Fetching transactions for IBAN %s from %s to %s",
                account.iban,
                date_from,
                date_to,
            )
            try:
                feed = client.get_transactions(
                    fints_account,
                    start_date=date_from,
                    end_date=date_to,
                )
            except Exception as e:
                raise map_fints_error(e, "Fetching transactions") from e

            closing = self._closing_balance(client, fints_account, account.currency)

        bookings = self._reconciliation.reconcile(to_bookings(feed.entries), closing)
        logger.info("Successfully fetched %d transactions", len(bookings))

        return TransactionsResponse(
            bookings=bookings,
            balances_report=BalancesReport(ready_balance=closing),
            account=account.with_external_id(self.bank_api, fints_account.account_id),
        )

    async def _list_balances(self, request: BalancesRequest) -> BalancesResponse:
        account = request.account
        with fints_session(self._client_factory, request) as (client, fints_accounts):
            fints_account = self._find_account(fints_accounts, account)
            try:
                snapshot = client.get_balance(fints_account)
            except Exception as e:
                raise map_fints_error(e, "Fetching balance") from e

        return BalancesResponse(
            balances_report=BalancesReport(
                ready_balance=to_closing_balance(snapshot, account.currency),
            ),
            account=account.with_external_id(self.bank_api, fints_account.account_id),
        )

    def _sca_dialog(self) -> ScaDialogPort:
        return FinTSScaDialog(self._client_factory)

    def _find_account(
        self,
        fints_accounts: Sequence[Any],
        account: BankAccount,
    ) -> Any:
        account_id = account.external_id(self.bank_api)
        for fints_account in fints_accounts:
            if account_id and fints_account.account_id == account_id:
                return fints_account
            if normalize_iban(fints_account.iban) == account.iban:
                return fints_account
        raise InvalidAccountReferenceError(account.iban)

    @staticmethod
    def _closing_balance(
        client: Any,
        fints_account: Any,
        currency: str,
    ) -> Optional[Balance]:
        capabilities = fints_account.capabilities
        if not (capabilities and capabilities.can_fetch_balance):
            return None
        try:
            snapshot = client.get_balance(fints_account)
        except Exception as e:
            logger.warning(
                "Could not fetch balance for %s: %s",
                fints_account.iban,
                e,
            )
            return None
        return to_closing_balance(snapshot, currency)
