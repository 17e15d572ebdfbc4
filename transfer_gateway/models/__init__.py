from transfer_gateway.models.enums import (
    EventTopic,
    FailureKind,
    PaymentPluginStatus,
    ReconciliationResult,
    TransactionType,
    TransferStatus,
)
from transfer_gateway.models.records import (
    AuditLog,
    Base,
    NotificationRecord,
    PaymentMethodRecord,
    ResponseRecord,
    TokenRecord,
)

__all__ = [
    "Base",
    "PaymentMethodRecord",
    "ResponseRecord",
    "TokenRecord",
    "NotificationRecord",
    "AuditLog",
    "EventTopic",
    "FailureKind",
    "PaymentPluginStatus",
    "ReconciliationResult",
    "TransactionType",
    "TransferStatus",
]
