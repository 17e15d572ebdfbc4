"""
Webhook reconciliation.

Each inbound notification goes through:

  Received -> stored once (unique on the webhook id)
      duplicate insert            -> DUPLICATE (not an error)
      other store failure         -> PersistenceError (sender retries)
  Accepted -> topic mapped to a billing status
      no status for this topic    -> IGNORED
      transfer unknown to ledger  -> UnknownTransferError (sender retries)
  Reconciling -> billing payment loaded, transaction located
      transaction not pending     -> NOOP (billing already has the final say)
      transaction pending         -> TRANSITIONED to success/failure
  In both reconciling outcomes the ledger's transfer status mirror is
  updated.

The notification row, the ledger update and the audit entries commit
together after the billing step. Any failure rolls all of them back, so
the sender's redelivery is processed again rather than seen as a
duplicate.
"""

import logging

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from transfer_gateway.audit.logger import log_event
from transfer_gateway.billing.base import BillingPlatform, CallContext, TransactionStatus
from transfer_gateway.client.resources import Webhook, id_from_href
from transfer_gateway.engine.errors import (
    DataIntegrityError,
    MalformedNotificationError,
    PersistenceError,
    UnknownTransferError,
)
from transfer_gateway.engine.status_mapper import billing_status_for_topic, transfer_status_for_topic
from transfer_gateway.ledger.repository import NotificationStore, ResponseLedger
from transfer_gateway.models.enums import PaymentPluginStatus, ReconciliationResult
from transfer_gateway.models.records import ResponseRecord

logger = logging.getLogger("transfer_gateway.reconciler")


def parse_webhook(raw_payload: str) -> Webhook:
    try:
        return Webhook.model_validate_json(raw_payload)
    except ValidationError as e:
        raise MalformedNotificationError(f"Webhook payload could not be parsed: {e}") from e


class NotificationReconciler:
    def __init__(self, billing: BillingPlatform):
        self._billing = billing

    async def process(self, session: AsyncSession, raw_payload: str, context: CallContext) -> ReconciliationResult:
        webhook = parse_webhook(raw_payload)
        tenant_id = context.tenant_id

        try:
            await NotificationStore(session).add(webhook, raw_payload, context.utc_now, tenant_id)
        except IntegrityError:
            await session.rollback()
            logger.debug("Notification %s was already processed", webhook.id)
            return ReconciliationResult.DUPLICATE
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error("Error saving webhook %s in database: %s", webhook.id, e)
            raise PersistenceError(f"Error saving webhook {webhook.id} in database") from e

        try:
            result = await self._reconcile(session, webhook, context)
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error("Error processing webhook %s: %s", webhook.id, e)
            raise PersistenceError(f"Error processing webhook {webhook.id}") from e
        except Exception:
            await session.rollback()
            raise

        return result

    async def _reconcile(self, session: AsyncSession, webhook: Webhook, context: CallContext) -> ReconciliationResult:
        tenant_id = context.tenant_id
        status = billing_status_for_topic(webhook.topic)
        if status is None:
            logger.debug("Ignoring event %s (%s)", webhook.topic, webhook.id)
            await log_event(session, "notification_ignored", tenant_id=tenant_id, details={
                "webhook_id": webhook.id,
                "topic": webhook.topic,
            })
            return ReconciliationResult.IGNORED

        transfer_id = self._transfer_id(webhook)
        ledger = ResponseLedger(session)
        entry = await ledger.get_by_transfer_id(transfer_id, tenant_id)
        if entry is None:
            logger.error("Webhook %s references unknown transfer %s", webhook.id, transfer_id)
            raise UnknownTransferError(f"No response recorded for transfer '{transfer_id}' (tenant {tenant_id})")

        result = await self._update_billing(entry, status, context)

        mirror = transfer_status_for_topic(webhook.topic)
        if mirror is not None:
            await ledger.update_status(transfer_id, mirror.value, tenant_id)

        action = "transaction_transitioned" if result is ReconciliationResult.TRANSITIONED else "transaction_noop"
        await log_event(session, action, transfer_id=transfer_id, kb_payment_id=entry.kb_payment_id,
                        tenant_id=tenant_id, details={
                            "webhook_id": webhook.id,
                            "topic": webhook.topic,
                            "billing_status": status.value,
                            "kb_transaction_id": entry.kb_payment_transaction_id,
                        })
        return result

    @staticmethod
    def _transfer_id(webhook: Webhook) -> str:
        if webhook.resource_href:
            return id_from_href(webhook.resource_href)
        if webhook.resource_id:
            return webhook.resource_id
        raise MalformedNotificationError(f"Webhook {webhook.id} has no resource link")

    async def _update_billing(
        self,
        entry: ResponseRecord,
        status: PaymentPluginStatus,
        context: CallContext,
    ) -> ReconciliationResult:
        payment = await self._billing.get_payment(entry.kb_payment_id, context)
        if payment.account_id != entry.kb_account_id:
            raise DataIntegrityError(
                f"kbAccountId='{entry.kb_account_id}' doesn't match payment#accountId='{payment.account_id}'"
            )

        transaction = payment.find_transaction(entry.kb_payment_transaction_id)
        if transaction is None:
            raise DataIntegrityError(
                f"kbPaymentTransactionId='{entry.kb_payment_transaction_id}' not found "
                f"for kbPaymentId='{entry.kb_payment_id}'"
            )

        if transaction.status is not TransactionStatus.PENDING:
            logger.info(
                "Transaction %s is already %s, leaving billing state alone",
                transaction.id,
                transaction.status.value,
            )
            return ReconciliationResult.NOOP

        await self._billing.notify_pending_transaction_of_state_changed(
            entry.kb_account_id,
            transaction.id,
            status is PaymentPluginStatus.PROCESSED,
            context,
        )
        logger.info("Transaction %s transitioned to %s", transaction.id, status.value)
        return ReconciliationResult.TRANSITIONED
