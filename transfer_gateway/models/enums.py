"""Enumerations for the transfer gateway domain model."""

from enum import Enum


class TransactionType(str, Enum):
    """Billing-platform payment transaction types."""

    AUTHORIZE = "AUTHORIZE"
    CAPTURE = "CAPTURE"
    PURCHASE = "PURCHASE"
    VOID = "VOID"
    CREDIT = "CREDIT"
    REFUND = "REFUND"


class PaymentPluginStatus(str, Enum):
    """Outcome of a plugin call as reported back to the billing platform."""

    PROCESSED = "PROCESSED"
    PENDING = "PENDING"
    ERROR = "ERROR"
    CANCELED = "CANCELED"
    UNDEFINED = "UNDEFINED"


class FailureKind(str, Enum):
    """Why a transaction did not go through."""

    NONE = "none"
    BUSINESS_REJECTION = "business_rejection"  # declined by the processor, terminal
    TRANSIENT_INFRASTRUCTURE = "transient_infrastructure"  # unknown outcome, retry is safe


class TransferStatus(str, Enum):
    """Remote transfer lifecycle, mirrored in the responses table."""

    PENDING = "pending"
    PROCESSED = "processed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    RECLAIMED = "reclaimed"


class EventTopic(str, Enum):
    """Webhook topics that concern transfers."""

    ACCOUNT_TRANSFER_CREATED = "account_transfer_created"
    ACCOUNT_TRANSFER_CANCELLED = "account_transfer_cancelled"
    ACCOUNT_TRANSFER_FAILED = "account_transfer_failed"
    ACCOUNT_TRANSFER_COMPLETED = "account_transfer_completed"
    CUSTOMER_TRANSFER_CREATED = "customer_transfer_created"
    CUSTOMER_TRANSFER_CANCELLED = "customer_transfer_cancelled"
    CUSTOMER_TRANSFER_FAILED = "customer_transfer_failed"
    CUSTOMER_TRANSFER_COMPLETED = "customer_transfer_completed"
    CUSTOMER_BANK_TRANSFER_CREATED = "customer_bank_transfer_created"
    CUSTOMER_BANK_TRANSFER_CANCELLED = "customer_bank_transfer_cancelled"
    CUSTOMER_BANK_TRANSFER_FAILED = "customer_bank_transfer_failed"
    CUSTOMER_BANK_TRANSFER_COMPLETED = "customer_bank_transfer_completed"
    CUSTOMER_TRANSFER_RECLAIMED = "customer_transfer_reclaimed"


class ReconciliationResult(str, Enum):
    """Terminal states of an inbound webhook that did not fail."""

    DUPLICATE = "duplicate"
    IGNORED = "ignored"
    NOOP = "noop"
    TRANSITIONED = "transitioned"
