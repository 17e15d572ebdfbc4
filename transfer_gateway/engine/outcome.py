"""Result type returned to the billing platform for every payment call."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from transfer_gateway.client.errors import RemoteConnectionError
from transfer_gateway.engine.status_mapper import plugin_status_for_transfer
from transfer_gateway.models.enums import FailureKind, PaymentPluginStatus, TransactionType
from transfer_gateway.models.records import ResponseRecord


@dataclass
class TransactionOutcome:
    """
    What happened to one payment transaction.

    ``failure_kind`` tells a declined transfer (terminal) apart from one
    whose fate is unknown because the processor could not be reached.
    """

    kb_payment_id: str
    kb_transaction_id: str
    transaction_type: TransactionType
    status: PaymentPluginStatus
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    failure_kind: FailureKind = FailureKind.NONE
    first_reference_id: Optional[str] = None  # remote transfer id
    second_reference_id: Optional[str] = None
    gateway_error: Optional[str] = None
    gateway_error_code: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    properties: dict[str, Any] = field(default_factory=dict)

    @property
    def is_retryable(self) -> bool:
        return self.failure_kind is FailureKind.TRANSIENT_INFRASTRUCTURE

    @classmethod
    def unsupported(
        cls,
        kb_payment_id: str,
        kb_transaction_id: str,
        transaction_type: TransactionType,
        amount: Optional[Decimal] = None,
        currency: Optional[str] = None,
        properties: Optional[dict[str, Any]] = None,
    ) -> "TransactionOutcome":
        """Echo for operations the processor does not offer."""
        return cls(
            kb_payment_id=kb_payment_id,
            kb_transaction_id=kb_transaction_id,
            transaction_type=transaction_type,
            status=PaymentPluginStatus.UNDEFINED,
            amount=amount,
            currency=currency,
            properties=dict(properties or {}),
        )

    @classmethod
    def from_record(cls, record: ResponseRecord) -> "TransactionOutcome":
        if record.transfer_id:
            status = plugin_status_for_transfer(record.transfer_status)
            failure_kind = FailureKind.BUSINESS_REJECTION if status is PaymentPluginStatus.ERROR else FailureKind.NONE
        elif record.error_code == RemoteConnectionError.CODE:
            status, failure_kind = PaymentPluginStatus.UNDEFINED, FailureKind.TRANSIENT_INFRASTRUCTURE
        else:
            status, failure_kind = PaymentPluginStatus.ERROR, FailureKind.BUSINESS_REJECTION

        return cls(
            kb_payment_id=record.kb_payment_id,
            kb_transaction_id=record.kb_payment_transaction_id,
            transaction_type=TransactionType(record.transaction_type),
            status=status,
            amount=record.amount,
            currency=record.currency,
            failure_kind=failure_kind,
            first_reference_id=record.transfer_id,
            gateway_error=record.error_message,
            gateway_error_code=record.error_code,
            created_at=record.created_at,
        )
