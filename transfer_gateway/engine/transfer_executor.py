"""
Transfer executor: turns a billing payment call into a remote transfer.

The flow for each purchase or refund:

  1. Token check (refresh transparently when expired)
  2. Payment method -> customer funding source link
  3. Source/destination by direction:
       - refund:    merchant funding source -> customer funding source
       - otherwise: customer funding source -> merchant account
  4. Submit the transfer, then fetch it by location (plus the failure
     detail when its status is "failed")
  5. Record the outcome in the ledger, exactly once per attempt

A declined transfer is recorded and returned as a failed outcome, never
raised. Once the processor has accepted a transfer, failing to record it
raises ``StateInconsistencyError``: money has moved and the billing
platform must not retry it as a fresh payment.
"""

import logging
from decimal import Decimal
from typing import Any, Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from transfer_gateway.audit.logger import log_event
from transfer_gateway.billing.base import CallContext
from transfer_gateway.client.base import TransferApiClient
from transfer_gateway.client.errors import RemoteApiError, RemoteConnectionError
from transfer_gateway.client.resources import (
    ACCOUNT,
    SELF,
    HalLink,
    Transfer,
    TransferFailure,
    TransferRequest,
    id_from_href,
)
from transfer_gateway.engine.errors import (
    PaymentMethodNotFoundError,
    PersistenceError,
    StateInconsistencyError,
)
from transfer_gateway.engine.outcome import TransactionOutcome
from transfer_gateway.engine.status_mapper import is_failed, plugin_status_for_transfer
from transfer_gateway.engine.token_guard import TokenGuard
from transfer_gateway.ledger.repository import PaymentMethodStore, ResponseLedger
from transfer_gateway.models.enums import FailureKind, PaymentPluginStatus, TransactionType, TransferStatus

logger = logging.getLogger("transfer_gateway.executor")

MERCHANT_FUNDING_SOURCE_NOT_FOUND = "MerchantFundingSourceNotFound"


class TransferExecutor:
    def __init__(
        self,
        client: TransferApiClient,
        token_guard: TokenGuard,
        merchant_funding_source_id: Optional[str] = None,
    ):
        self._client = client
        self._token_guard = token_guard
        # When unset, the first non-removed source of the merchant account is used.
        self._merchant_funding_source_id = merchant_funding_source_id

    async def execute(
        self,
        session: AsyncSession,
        transaction_type: TransactionType,
        kb_account_id: str,
        kb_payment_id: str,
        kb_transaction_id: str,
        kb_payment_method_id: str,
        amount: Decimal,
        currency: str,
        properties: Optional[dict[str, Any]],
        context: CallContext,
    ) -> TransactionOutcome:
        """
        Execute one transfer for a billing transaction.

        Raises:
            TokenMissingError, RefreshFailedError: No usable credential.
            PaymentMethodNotFoundError: No funding source mapped.
            PersistenceError: The store failed before anything was sent.
            StateInconsistencyError: Transfer created, local record failed.
        """
        tenant_id = context.tenant_id
        properties = dict(properties or {})

        token = await self._token_guard.ensure_valid_token(tenant_id)

        payment_method = await PaymentMethodStore(session).get(kb_payment_method_id, tenant_id)
        if payment_method is None:
            raise PaymentMethodNotFoundError(
                f"No funding source was found for payment method {kb_payment_method_id}"
            )

        try:
            customer_link = await self._funding_source_link(token, payment_method.funding_source_id)
            if transaction_type is TransactionType.REFUND:
                source = await self._merchant_funding_source_link(token)
                destination = customer_link
            else:
                source = customer_link
                destination = await self._merchant_account_link(token)

            request = TransferRequest.build(source, destination, amount, currency)
            transfer_href = await self._client.create_transfer(token, request, idempotency_key=kb_transaction_id)
        except RemoteApiError as e:
            return await self._record_rejection(
                session, e, transaction_type, kb_account_id, kb_payment_id,
                kb_transaction_id, amount, currency, properties, context,
            )

        transfer, failure = await self._fetch_transfer(token, transfer_href)
        transfer_id = transfer.id if transfer else id_from_href(transfer_href)
        transfer_status = transfer.status if transfer else TransferStatus.PENDING.value
        snapshot = {
            "href": transfer_href,
            "transfer": transfer.model_dump(mode="json", by_alias=True) if transfer else None,
            "failure": failure.model_dump(mode="json", by_alias=True) if failure else None,
        }

        try:
            await ResponseLedger(session).record_success(
                kb_account_id=kb_account_id,
                kb_payment_id=kb_payment_id,
                kb_transaction_id=kb_transaction_id,
                transaction_type=transaction_type,
                amount=amount,
                currency=currency,
                transfer_id=transfer_id,
                transfer_status=transfer_status,
                snapshot=snapshot,
                properties=properties,
                created_at=context.utc_now,
                tenant_id=tenant_id,
            )
            await log_event(session, "transfer_created", transfer_id=transfer_id, kb_payment_id=kb_payment_id,
                            tenant_id=tenant_id, details={
                                "type": transaction_type.value,
                                "amount": format(amount, "f"),
                                "currency": currency,
                                "status": transfer_status,
                            })
            await session.commit()
        except (PersistenceError, SQLAlchemyError) as e:
            await session.rollback()
            logger.error(
                "Transfer %s created for kbTransactionId=%s but recording it failed: %s",
                transfer_id,
                kb_transaction_id,
                e,
            )
            raise StateInconsistencyError(
                f"Payment went through, but we encountered a database error. Transfer: {transfer_id}",
                transfer_id=transfer_id,
                transfer=snapshot,
            ) from e

        logger.info("Transfer %s for kbTransactionId=%s is %s", transfer_id, kb_transaction_id, transfer_status)
        status = plugin_status_for_transfer(transfer_status)

        return TransactionOutcome(
            kb_payment_id=kb_payment_id,
            kb_transaction_id=kb_transaction_id,
            transaction_type=transaction_type,
            status=status,
            amount=amount,
            currency=currency,
            failure_kind=FailureKind.BUSINESS_REJECTION if status is PaymentPluginStatus.ERROR else FailureKind.NONE,
            first_reference_id=transfer_id,
            gateway_error=failure.description if failure else None,
            gateway_error_code=failure.code if failure else None,
            created_at=context.utc_now,
            properties=properties,
        )

    async def _fetch_transfer(
        self, token: str, transfer_href: str
    ) -> tuple[Optional[Transfer], Optional[TransferFailure]]:
        """
        Load the created transfer and, if it failed, why.

        The transfer exists at this point, so a failed or unreadable fetch is
        logged and the caller falls back to the id in the location reference.
        """
        try:
            transfer = await self._client.get_transfer(token, transfer_href)
        except (RemoteApiError, ValidationError) as e:
            logger.warning("Created transfer %s could not be fetched: %s", transfer_href, e)
            return None, None

        failure = None
        if is_failed(transfer.status):
            try:
                failure = await self._client.get_transfer_failure(token, transfer_href)
            except (RemoteApiError, ValidationError) as e:
                logger.warning("Failure detail of transfer %s could not be fetched: %s", transfer.id, e)
        return transfer, failure

    async def _record_rejection(
        self,
        session: AsyncSession,
        error: RemoteApiError,
        transaction_type: TransactionType,
        kb_account_id: str,
        kb_payment_id: str,
        kb_transaction_id: str,
        amount: Decimal,
        currency: str,
        properties: dict[str, Any],
        context: CallContext,
    ) -> TransactionOutcome:
        if isinstance(error, RemoteConnectionError):
            status, failure_kind = PaymentPluginStatus.UNDEFINED, FailureKind.TRANSIENT_INFRASTRUCTURE
        else:
            status, failure_kind = PaymentPluginStatus.ERROR, FailureKind.BUSINESS_REJECTION

        logger.warning(
            "Transfer for kbTransactionId=%s not created (%s): %s",
            kb_transaction_id,
            error.code or error.status_code or "-",
            error.message,
        )

        try:
            await ResponseLedger(session).record_failure(
                kb_account_id=kb_account_id,
                kb_payment_id=kb_payment_id,
                kb_transaction_id=kb_transaction_id,
                transaction_type=transaction_type,
                amount=amount,
                currency=currency,
                error_code=error.code,
                error_message=error.message,
                properties=properties,
                created_at=context.utc_now,
                tenant_id=context.tenant_id,
            )
            await log_event(session, "transfer_rejected", kb_payment_id=kb_payment_id,
                            tenant_id=context.tenant_id, details={
                                "type": transaction_type.value,
                                "error_code": error.code,
                                "error": error.message,
                                "status_code": error.status_code,
                            })
            await session.commit()
        except (PersistenceError, SQLAlchemyError) as e:
            await session.rollback()
            logger.error("Failed to record rejected transfer for kbTransactionId=%s: %s", kb_transaction_id, e)

        return TransactionOutcome(
            kb_payment_id=kb_payment_id,
            kb_transaction_id=kb_transaction_id,
            transaction_type=transaction_type,
            status=status,
            amount=amount,
            currency=currency,
            failure_kind=failure_kind,
            gateway_error=error.message,
            gateway_error_code=error.code,
            created_at=context.utc_now,
            properties=properties,
        )

    async def _funding_source_link(self, token: str, funding_source_id: str) -> HalLink:
        funding_source = await self._client.get_funding_source(token, funding_source_id)
        link = funding_source.links.get(SELF)
        if link is None:
            raise RemoteApiError(f"Funding source {funding_source_id} has no self link")
        return link

    async def _merchant_account_link(self, token: str) -> HalLink:
        root = await self._client.get_root(token)
        link = root.links.get(ACCOUNT)
        if link is None:
            raise RemoteApiError("API root has no account link")
        return link

    async def _merchant_funding_source_link(self, token: str) -> HalLink:
        """
        The merchant side of a refund.

        Uses the configured source when there is one; otherwise the first
        non-removed source in the merchant account listing. With several
        active sources that choice follows the processor's ordering.
        """
        if self._merchant_funding_source_id:
            return await self._funding_source_link(token, self._merchant_funding_source_id)

        account = await self._merchant_account_link(token)
        listing = await self._client.list_account_funding_sources(token, account.href, removed=False)
        active = [fs for fs in listing.funding_sources if not fs.removed]
        if not active:
            raise RemoteApiError(
                "The merchant account has no active funding source",
                code=MERCHANT_FUNDING_SOURCE_NOT_FOUND,
            )
        return await self._funding_source_link(token, active[0].id)
