"""
Payment plugin facade exposed to the billing platform host.

Only purchases and refunds move money; the processor has no
authorization hold, capture or standalone credit, so those calls return
an UNDEFINED outcome without touching the processor or the ledger.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from transfer_gateway.billing.base import CallContext
from transfer_gateway.engine.errors import InvalidPaymentMethodError, PersistenceError
from transfer_gateway.engine.outcome import TransactionOutcome
from transfer_gateway.engine.reconciler import NotificationReconciler
from transfer_gateway.engine.transfer_executor import TransferExecutor
from transfer_gateway.ledger.repository import PaymentMethodStore, ResponseLedger
from transfer_gateway.models.enums import ReconciliationResult, TransactionType
from transfer_gateway.models.records import PaymentMethodRecord

logger = logging.getLogger("transfer_gateway.plugin")

PROPERTY_FUNDING_SOURCE_ID = "fundingSource"
PROPERTY_CUSTOMER_ID = "customerId"


@dataclass
class GatewayNotification:
    """Acknowledgment returned to the webhook sender."""

    result: ReconciliationResult
    status: int = 200
    body: str = ""


class TransferPaymentPlugin:
    def __init__(self, executor: TransferExecutor, reconciler: NotificationReconciler):
        self._executor = executor
        self._reconciler = reconciler

    async def authorize_payment(
        self, session: AsyncSession, kb_account_id: str, kb_payment_id: str, kb_transaction_id: str,
        kb_payment_method_id: str, amount: Decimal, currency: str,
        properties: Optional[dict[str, Any]], context: CallContext,
    ) -> TransactionOutcome:
        return TransactionOutcome.unsupported(
            kb_payment_id, kb_transaction_id, TransactionType.AUTHORIZE, amount, currency, properties
        )

    async def capture_payment(
        self, session: AsyncSession, kb_account_id: str, kb_payment_id: str, kb_transaction_id: str,
        kb_payment_method_id: str, amount: Decimal, currency: str,
        properties: Optional[dict[str, Any]], context: CallContext,
    ) -> TransactionOutcome:
        return TransactionOutcome.unsupported(
            kb_payment_id, kb_transaction_id, TransactionType.CAPTURE, amount, currency, properties
        )

    async def credit_payment(
        self, session: AsyncSession, kb_account_id: str, kb_payment_id: str, kb_transaction_id: str,
        kb_payment_method_id: str, amount: Decimal, currency: str,
        properties: Optional[dict[str, Any]], context: CallContext,
    ) -> TransactionOutcome:
        return TransactionOutcome.unsupported(
            kb_payment_id, kb_transaction_id, TransactionType.CREDIT, amount, currency, properties
        )

    async def void_payment(
        self, session: AsyncSession, kb_account_id: str, kb_payment_id: str, kb_transaction_id: str,
        kb_payment_method_id: str, properties: Optional[dict[str, Any]], context: CallContext,
    ) -> TransactionOutcome:
        # TODO: map to the processor's transfer cancellation once pending ACH transfers need voiding
        return TransactionOutcome.unsupported(kb_payment_id, kb_transaction_id, TransactionType.VOID, properties=properties)

    async def purchase_payment(
        self, session: AsyncSession, kb_account_id: str, kb_payment_id: str, kb_transaction_id: str,
        kb_payment_method_id: str, amount: Decimal, currency: str,
        properties: Optional[dict[str, Any]], context: CallContext,
    ) -> TransactionOutcome:
        return await self._executor.execute(
            session, TransactionType.PURCHASE, kb_account_id, kb_payment_id, kb_transaction_id,
            kb_payment_method_id, amount, currency, properties, context,
        )

    async def refund_payment(
        self, session: AsyncSession, kb_account_id: str, kb_payment_id: str, kb_transaction_id: str,
        kb_payment_method_id: str, amount: Decimal, currency: str,
        properties: Optional[dict[str, Any]], context: CallContext,
    ) -> TransactionOutcome:
        return await self._executor.execute(
            session, TransactionType.REFUND, kb_account_id, kb_payment_id, kb_transaction_id,
            kb_payment_method_id, amount, currency, properties, context,
        )

    def build_form_descriptor(
        self, kb_account_id: str, custom_fields: Optional[dict[str, Any]],
        properties: Optional[dict[str, Any]], context: CallContext,
    ) -> None:
        """Hosted payment pages are not offered."""
        return None

    async def process_notification(
        self, session: AsyncSession, notification: str, properties: Optional[dict[str, Any]], context: CallContext,
    ) -> GatewayNotification:
        result = await self._reconciler.process(session, notification, context)
        return GatewayNotification(result=result, body=notification)

    async def get_payment_info(
        self, session: AsyncSession, kb_payment_id: str, context: CallContext,
    ) -> list[TransactionOutcome]:
        records = await ResponseLedger(session).list_by_payment(kb_payment_id, context.tenant_id)
        return [TransactionOutcome.from_record(r) for r in records]

    async def add_payment_method(
        self, session: AsyncSession, kb_account_id: str, kb_payment_method_id: str,
        properties: Optional[dict[str, Any]], set_default: bool, context: CallContext,
    ) -> PaymentMethodRecord:
        properties = properties or {}
        funding_source_id = properties.get(PROPERTY_FUNDING_SOURCE_ID)
        if not funding_source_id:
            raise InvalidPaymentMethodError(
                f"Property '{PROPERTY_FUNDING_SOURCE_ID}' is required to add payment method {kb_payment_method_id}"
            )

        record = await PaymentMethodStore(session).add(
            kb_account_id=kb_account_id,
            kb_payment_method_id=kb_payment_method_id,
            funding_source_id=str(funding_source_id),
            customer_id=properties.get(PROPERTY_CUSTOMER_ID),
            is_default=set_default,
            tenant_id=context.tenant_id,
        )
        await self._commit(session)
        logger.info("Payment method %s mapped to funding source %s", kb_payment_method_id, funding_source_id)
        return record

    async def delete_payment_method(
        self, session: AsyncSession, kb_payment_method_id: str, context: CallContext,
    ) -> bool:
        deleted = await PaymentMethodStore(session).delete(kb_payment_method_id, context.tenant_id)
        await self._commit(session)
        return deleted

    @staticmethod
    async def _commit(session: AsyncSession) -> None:
        try:
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            raise PersistenceError(f"Commit failed: {e}") from e
