from transfer_gateway.billing.base import (
    BillingPlatform,
    CallContext,
    Payment,
    PaymentTransaction,
    TransactionStatus,
)

__all__ = ["BillingPlatform", "CallContext", "Payment", "PaymentTransaction", "TransactionStatus"]
