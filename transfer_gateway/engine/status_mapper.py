"""
Status vocabulary mapping.

Three independent tables:
  - webhook topic -> billing status (PROCESSED / ERROR / nothing to do)
  - webhook topic -> transfer status mirrored in the responses table
  - transfer status string -> plugin status returned to the billing platform
"""

from typing import Optional

from transfer_gateway.models.enums import EventTopic, PaymentPluginStatus, TransferStatus

_BILLING_STATUS_BY_TOPIC = {
    EventTopic.ACCOUNT_TRANSFER_COMPLETED: PaymentPluginStatus.PROCESSED,
    EventTopic.CUSTOMER_TRANSFER_COMPLETED: PaymentPluginStatus.PROCESSED,
    EventTopic.ACCOUNT_TRANSFER_FAILED: PaymentPluginStatus.ERROR,
    EventTopic.CUSTOMER_TRANSFER_FAILED: PaymentPluginStatus.ERROR,
    EventTopic.ACCOUNT_TRANSFER_CANCELLED: PaymentPluginStatus.ERROR,
    EventTopic.CUSTOMER_TRANSFER_CANCELLED: PaymentPluginStatus.ERROR,
}

_TRANSFER_STATUS_BY_TOPIC = {
    EventTopic.ACCOUNT_TRANSFER_CREATED: TransferStatus.PENDING,
    EventTopic.CUSTOMER_TRANSFER_CREATED: TransferStatus.PENDING,
    EventTopic.CUSTOMER_BANK_TRANSFER_CREATED: TransferStatus.PENDING,
    EventTopic.ACCOUNT_TRANSFER_COMPLETED: TransferStatus.PROCESSED,
    EventTopic.CUSTOMER_TRANSFER_COMPLETED: TransferStatus.PROCESSED,
    EventTopic.CUSTOMER_BANK_TRANSFER_COMPLETED: TransferStatus.PROCESSED,
    EventTopic.ACCOUNT_TRANSFER_FAILED: TransferStatus.FAILED,
    EventTopic.CUSTOMER_TRANSFER_FAILED: TransferStatus.FAILED,
    EventTopic.CUSTOMER_BANK_TRANSFER_FAILED: TransferStatus.FAILED,
    EventTopic.ACCOUNT_TRANSFER_CANCELLED: TransferStatus.CANCELLED,
    EventTopic.CUSTOMER_TRANSFER_CANCELLED: TransferStatus.CANCELLED,
    EventTopic.CUSTOMER_BANK_TRANSFER_CANCELLED: TransferStatus.CANCELLED,
    EventTopic.CUSTOMER_TRANSFER_RECLAIMED: TransferStatus.RECLAIMED,
}

_PLUGIN_STATUS_BY_TRANSFER_STATUS = {
    TransferStatus.PENDING: PaymentPluginStatus.PENDING,
    TransferStatus.PROCESSED: PaymentPluginStatus.PROCESSED,
    TransferStatus.FAILED: PaymentPluginStatus.ERROR,
    TransferStatus.RECLAIMED: PaymentPluginStatus.ERROR,
    TransferStatus.CANCELLED: PaymentPluginStatus.CANCELED,
}


def parse_topic(topic: Optional[str]) -> Optional[EventTopic]:
    """Topics outside the transfer vocabulary (customer_created, ...) yield None."""
    try:
        return EventTopic((topic or "").strip().lower())
    except ValueError:
        return None


def parse_transfer_status(status: Optional[str]) -> Optional[TransferStatus]:
    try:
        return TransferStatus((status or "").strip().lower())
    except ValueError:
        return None


def billing_status_for_topic(topic: Optional[str]) -> Optional[PaymentPluginStatus]:
    """
    Billing outcome announced by a webhook topic.

    Completed transfers are PROCESSED, failed or cancelled ones are
    ERROR. None means the event does not settle a transaction.
    """
    event = parse_topic(topic)
    return _BILLING_STATUS_BY_TOPIC.get(event) if event else None


def transfer_status_for_topic(topic: Optional[str]) -> Optional[TransferStatus]:
    event = parse_topic(topic)
    return _TRANSFER_STATUS_BY_TOPIC.get(event) if event else None


def plugin_status_for_transfer(status: Optional[str]) -> PaymentPluginStatus:
    transfer_status = parse_transfer_status(status)
    if transfer_status is None:
        return PaymentPluginStatus.UNDEFINED
    return _PLUGIN_STATUS_BY_TRANSFER_STATUS[transfer_status]


def is_failed(status: Optional[str]) -> bool:
    return parse_transfer_status(status) is TransferStatus.FAILED
