from transfer_gateway.ledger.repository import (
    NotificationStore,
    PaymentMethodStore,
    ResponseLedger,
    TokenStore,
)

__all__ = ["ResponseLedger", "PaymentMethodStore", "TokenStore", "NotificationStore"]
