"""
Billing platform interface.

The billing platform owns payments and their transactions. The gateway
only reads a payment to find the transaction a webhook is about, and
asks the platform to move a *pending* transaction to success or failure.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TransactionStatus(str, Enum):
    """Billing-platform transaction states."""

    SUCCESS = "SUCCESS"
    UNKNOWN = "UNKNOWN"
    PENDING = "PENDING"
    PAYMENT_FAILURE = "PAYMENT_FAILURE"
    PLUGIN_FAILURE = "PLUGIN_FAILURE"
    PAYMENT_SYSTEM_OFF = "PAYMENT_SYSTEM_OFF"


@dataclass(frozen=True)
class CallContext:
    """Tenant-scoped context of a single call."""

    tenant_id: str
    utc_now: datetime = field(default_factory=_utcnow)


@dataclass
class PaymentTransaction:
    id: str
    transaction_type: str
    status: TransactionStatus
    amount: Optional[Decimal] = None
    currency: Optional[str] = None


@dataclass
class Payment:
    id: str
    account_id: str
    transactions: list[PaymentTransaction] = field(default_factory=list)

    def find_transaction(self, transaction_id: str) -> Optional[PaymentTransaction]:
        for transaction in self.transactions:
            if transaction.id == transaction_id:
                return transaction
        return None


class BillingPlatform(ABC):
    """Abstract billing platform. Implementations raise ``BillingApiError``."""

    @abstractmethod
    async def get_payment(self, kb_payment_id: str, context: CallContext) -> Payment:
        ...

    @abstractmethod
    async def notify_pending_transaction_of_state_changed(
        self,
        kb_account_id: str,
        kb_transaction_id: str,
        is_success: bool,
        context: CallContext,
    ) -> None:
        """Move a pending transaction to SUCCESS or PAYMENT_FAILURE."""
        ...
