"""Domain services for banking."""

from multibank.domain.banking.services.booking_reconciliation import (
    BookingReconciliationService,
)
from multibank.domain.banking.services.sca_authorisation import (
    ScaAuthorisationStateMachine,
    ScaOperation,
    next_operations,
)

__all__ = [
    "BookingReconciliationService",
    "ScaAuthorisationStateMachine",
    "ScaOperation",
    "next_operations",
]
