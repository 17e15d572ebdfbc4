"""
Payment transaction endpoints.

POST /payments/{transaction_type} - Run a purchase, refund, authorize,
                                    capture, credit or void.
GET  /payments/{kb_payment_id}    - Every recorded attempt for a payment.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from transfer_gateway.api.deps import get_plugin
from transfer_gateway.billing.base import CallContext
from transfer_gateway.database import get_session
from transfer_gateway.engine.outcome import TransactionOutcome
from transfer_gateway.models.enums import TransactionType
from transfer_gateway.plugin import TransferPaymentPlugin

router = APIRouter(prefix="/payments", tags=["payments"])


class PaymentRequest(BaseModel):
    tenant_id: str
    kb_account_id: str
    kb_payment_id: str
    kb_transaction_id: str
    kb_payment_method_id: str
    amount: Optional[Decimal] = None
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    properties: dict[str, Any] = Field(default_factory=dict)


class OutcomeResponse(BaseModel):
    kb_payment_id: str
    kb_transaction_id: str
    transaction_type: str
    status: str
    failure_kind: str
    amount: Optional[Decimal]
    currency: Optional[str]
    first_reference_id: Optional[str]
    second_reference_id: Optional[str]
    gateway_error: Optional[str]
    gateway_error_code: Optional[str]
    created_at: Optional[datetime]


def _outcome_to_response(o: TransactionOutcome) -> OutcomeResponse:
    return OutcomeResponse(
        kb_payment_id=o.kb_payment_id,
        kb_transaction_id=o.kb_transaction_id,
        transaction_type=o.transaction_type.value,
        status=o.status.value,
        failure_kind=o.failure_kind.value,
        amount=o.amount,
        currency=o.currency,
        first_reference_id=o.first_reference_id,
        second_reference_id=o.second_reference_id,
        gateway_error=o.gateway_error,
        gateway_error_code=o.gateway_error_code,
        created_at=o.created_at,
    )


@router.post("/{transaction_type}", response_model=OutcomeResponse)
async def create_transaction(
    transaction_type: str,
    body: PaymentRequest,
    session: AsyncSession = Depends(get_session),
    plugin: TransferPaymentPlugin = Depends(get_plugin),
):
    """
    Run one payment transaction through the plugin.

    Declined transfers come back as 200 with status ERROR; only
    infrastructure and integrity failures produce error responses.
    """
    try:
        tx_type = TransactionType(transaction_type.upper())
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown transaction type: {transaction_type}")

    context = CallContext(tenant_id=body.tenant_id)
    ids = (body.kb_account_id, body.kb_payment_id, body.kb_transaction_id, body.kb_payment_method_id)

    if tx_type is TransactionType.VOID:
        outcome = await plugin.void_payment(session, *ids, body.properties, context)
        return _outcome_to_response(outcome)

    if body.amount is None or body.amount <= 0 or not body.currency:
        raise HTTPException(status_code=400, detail="A positive amount and a currency are required")

    handlers = {
        TransactionType.AUTHORIZE: plugin.authorize_payment,
        TransactionType.CAPTURE: plugin.capture_payment,
        TransactionType.PURCHASE: plugin.purchase_payment,
        TransactionType.CREDIT: plugin.credit_payment,
        TransactionType.REFUND: plugin.refund_payment,
    }
    outcome = await handlers[tx_type](
        session, *ids, body.amount, body.currency.upper(), body.properties, context
    )
    return _outcome_to_response(outcome)


@router.get("/{kb_payment_id}", response_model=list[OutcomeResponse])
async def get_payment_info(
    kb_payment_id: str,
    tenant_id: str = Query(..., description="Owning tenant"),
    session: AsyncSession = Depends(get_session),
    plugin: TransferPaymentPlugin = Depends(get_plugin),
):
    """All recorded attempts for a payment, oldest first."""
    outcomes = await plugin.get_payment_info(session, kb_payment_id, CallContext(tenant_id=tenant_id))
    return [_outcome_to_response(o) for o in outcomes]
