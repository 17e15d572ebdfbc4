"""
Persistence for the gateway's own tables.

Stores flush but never commit: the caller owns the transaction and
decides when an outcome is durable. Database failures other than
uniqueness violations on notifications are raised as ``PersistenceError``.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from transfer_gateway.client.resources import Webhook
from transfer_gateway.engine.errors import DataIntegrityError, PersistenceError
from transfer_gateway.models.enums import TransactionType
from transfer_gateway.models.records import (
    NotificationRecord,
    PaymentMethodRecord,
    ResponseRecord,
    TokenRecord,
)

logger = logging.getLogger("transfer_gateway.ledger")


class ResponseLedger:
    """
    Durable record of every transaction attempt.

    Writes are append-or-update keyed by the billing transaction id, so
    recording the same attempt twice leaves one row.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def record_success(
        self,
        *,
        kb_account_id: str,
        kb_payment_id: str,
        kb_transaction_id: str,
        transaction_type: TransactionType,
        amount: Optional[Decimal],
        currency: Optional[str],
        transfer_id: str,
        transfer_status: str,
        snapshot: Optional[dict[str, Any]],
        properties: Optional[dict[str, Any]],
        created_at: datetime,
        tenant_id: str,
    ) -> ResponseRecord:
        return await self._upsert(
            kb_transaction_id,
            tenant_id,
            kb_account_id=kb_account_id,
            kb_payment_id=kb_payment_id,
            transaction_type=transaction_type.value,
            amount=amount,
            currency=currency,
            transfer_id=transfer_id,
            transfer_status=transfer_status,
            transfer_snapshot=json.dumps(snapshot) if snapshot else None,
            error_code=None,
            error_message=None,
            additional_data=json.dumps(properties) if properties else None,
            created_at=created_at,
        )

    async def record_failure(
        self,
        *,
        kb_account_id: str,
        kb_payment_id: str,
        kb_transaction_id: str,
        transaction_type: TransactionType,
        amount: Optional[Decimal],
        currency: Optional[str],
        error_code: str,
        error_message: str,
        properties: Optional[dict[str, Any]],
        created_at: datetime,
        tenant_id: str,
    ) -> ResponseRecord:
        return await self._upsert(
            kb_transaction_id,
            tenant_id,
            kb_account_id=kb_account_id,
            kb_payment_id=kb_payment_id,
            transaction_type=transaction_type.value,
            amount=amount,
            currency=currency,
            error_code=error_code,
            error_message=error_message,
            additional_data=json.dumps(properties) if properties else None,
            created_at=created_at,
        )

    async def _upsert(self, kb_transaction_id: str, tenant_id: str, **values: Any) -> ResponseRecord:
        try:
            result = await self.session.execute(
                select(ResponseRecord).where(
                    ResponseRecord.kb_payment_transaction_id == kb_transaction_id,
                    ResponseRecord.tenant_id == tenant_id,
                )
            )
            record = result.scalars().first()
            if record is None:
                record = ResponseRecord(
                    kb_payment_transaction_id=kb_transaction_id,
                    tenant_id=tenant_id,
                    **values,
                )
                self.session.add(record)
            elif record.transfer_id and "transfer_id" not in values:
                # A created transfer is never replaced by a later rejection
                logger.warning(
                    "kbTransactionId=%s already has transfer %s, keeping it over error %s",
                    kb_transaction_id,
                    record.transfer_id,
                    values.get("error_code") or "-",
                )
                return record
            else:
                for name, value in values.items():
                    setattr(record, name, value)
            await self.session.flush()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to record response for kbTransactionId='{kb_transaction_id}': {e}") from e
        return record

    async def get_by_transfer_id(self, transfer_id: str, tenant_id: str) -> Optional[ResponseRecord]:
        try:
            result = await self.session.execute(
                select(ResponseRecord).where(
                    ResponseRecord.transfer_id == transfer_id,
                    ResponseRecord.tenant_id == tenant_id,
                )
            )
            rows = result.scalars().all()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load response for transfer '{transfer_id}': {e}") from e

        if len(rows) > 1:
            raise DataIntegrityError(
                f"{len(rows)} responses recorded for transfer '{transfer_id}' (tenant {tenant_id})"
            )
        return rows[0] if rows else None

    async def update_status(self, transfer_id: str, new_status: str, tenant_id: str) -> int:
        try:
            result = await self.session.execute(
                update(ResponseRecord)
                .where(
                    ResponseRecord.transfer_id == transfer_id,
                    ResponseRecord.tenant_id == tenant_id,
                )
                .values(transfer_status=new_status)
                .execution_options(synchronize_session="fetch")
            )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to update status of transfer '{transfer_id}': {e}") from e
        return result.rowcount

    async def list_by_payment(self, kb_payment_id: str, tenant_id: str) -> Sequence[ResponseRecord]:
        try:
            result = await self.session.execute(
                select(ResponseRecord)
                .where(
                    ResponseRecord.kb_payment_id == kb_payment_id,
                    ResponseRecord.tenant_id == tenant_id,
                )
                .order_by(ResponseRecord.created_at.asc(), ResponseRecord.id.asc())
            )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load responses for kbPaymentId='{kb_payment_id}': {e}") from e
        return result.scalars().all()


class PaymentMethodStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, kb_payment_method_id: str, tenant_id: str) -> Optional[PaymentMethodRecord]:
        try:
            result = await self.session.execute(
                select(PaymentMethodRecord).where(
                    PaymentMethodRecord.kb_payment_method_id == kb_payment_method_id,
                    PaymentMethodRecord.tenant_id == tenant_id,
                    PaymentMethodRecord.is_deleted.is_(False),
                )
            )
        except SQLAlchemyError as e:
            raise PersistenceError(
                f"Failed to load payment method for kbPaymentMethodId='{kb_payment_method_id}': {e}"
            ) from e
        return result.scalars().first()

    async def add(
        self,
        *,
        kb_account_id: str,
        kb_payment_method_id: str,
        funding_source_id: str,
        customer_id: Optional[str],
        is_default: bool,
        tenant_id: str,
    ) -> PaymentMethodRecord:
        record = PaymentMethodRecord(
            kb_account_id=kb_account_id,
            kb_payment_method_id=kb_payment_method_id,
            funding_source_id=funding_source_id,
            customer_id=customer_id,
            is_default=is_default,
            tenant_id=tenant_id,
        )
        self.session.add(record)
        try:
            await self.session.flush()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to add payment method '{kb_payment_method_id}': {e}") from e
        return record

    async def delete(self, kb_payment_method_id: str, tenant_id: str) -> bool:
        record = await self.get(kb_payment_method_id, tenant_id)
        if record is None:
            return False
        record.is_deleted = True
        try:
            await self.session.flush()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to delete payment method '{kb_payment_method_id}': {e}") from e
        return True


class TokenStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, tenant_id: str) -> Optional[TokenRecord]:
        try:
            result = await self.session.execute(
                select(TokenRecord).where(TokenRecord.tenant_id == tenant_id)
            )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load token pair for tenant {tenant_id}: {e}") from e
        return result.scalars().first()

    async def save(self, tenant_id: str, access_token: str, refresh_token: str) -> TokenRecord:
        """Overwrite the tenant's pair in place, creating it on first use."""
        record = await self.get(tenant_id)
        if record is None:
            record = TokenRecord(tenant_id=tenant_id, access_token=access_token, refresh_token=refresh_token)
            self.session.add(record)
        else:
            record.access_token = access_token
            record.refresh_token = refresh_token
        try:
            await self.session.flush()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to save token pair for tenant {tenant_id}: {e}") from e
        return record


class NotificationStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add(self, webhook: Webhook, raw_payload: str, received_at: datetime, tenant_id: str) -> NotificationRecord:
        """
        Insert a webhook.

        Raises ``sqlalchemy.exc.IntegrityError`` untouched when the webhook
        was already stored; the caller treats that as a duplicate.
        """
        record = NotificationRecord(
            webhook_id=webhook.id,
            topic=webhook.topic,
            resource_id=webhook.resource_id,
            resource_href=webhook.resource_href,
            raw_payload=raw_payload,
            received_at=received_at,
            tenant_id=tenant_id,
        )
        self.session.add(record)
        await self.session.flush()
        return record
