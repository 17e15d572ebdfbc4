"""
Gateway error taxonomy.

Business rejections by the processor are not exceptions: they come back
as a failed ``TransactionOutcome``. Everything here is a hard failure the
caller must see:

  - TransientInfrastructureError: store or billing platform unavailable,
    safe to retry (webhook senders redeliver on it)
  - StateInconsistencyError: money moved but the local record failed,
    must never be retried as a new transfer
  - DataIntegrityError: stored data contradicts itself, needs an operator
"""

from typing import Optional


class GatewayError(Exception):
    """Base exception for gateway failures."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class TransientInfrastructureError(GatewayError):
    """A dependency failed; retrying the whole operation is safe."""


class PersistenceError(TransientInfrastructureError):
    """The backing store could not be read or written."""


class BillingApiError(TransientInfrastructureError):
    """The billing platform failed to return a payment or apply a transition."""


class TokenMissingError(GatewayError):
    """No token pair is on file for the tenant."""


class RefreshFailedError(GatewayError):
    """The processor refused to refresh the tenant's token pair."""


class PaymentMethodNotFoundError(GatewayError):
    """The billing payment method has no funding source mapping."""


class StateInconsistencyError(GatewayError):
    """
    The transfer went through but recording it locally failed.

    ``transfer`` holds whatever snapshot we had so an operator can
    reconcile by hand.
    """

    def __init__(self, message: str, transfer_id: Optional[str] = None, transfer: Optional[dict] = None):
        super().__init__(message, code="STATE_INCONSISTENCY")
        self.transfer_id = transfer_id
        self.transfer = transfer


class DataIntegrityError(GatewayError):
    """Stored records contradict each other or the billing platform."""


class UnknownTransferError(DataIntegrityError):
    """A webhook references a transfer the ledger has no record of."""


class MalformedNotificationError(GatewayError):
    """The webhook body could not be parsed."""


class InvalidPaymentMethodError(GatewayError):
    """A payment method cannot be stored as given (missing funding source)."""
