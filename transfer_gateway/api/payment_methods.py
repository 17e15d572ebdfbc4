"""
Payment method endpoints.

POST   /payment-methods                        - Map a billing payment method to a funding source.
DELETE /payment-methods/{kb_payment_method_id} - Soft-delete a mapping.
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from transfer_gateway.api.deps import get_plugin
from transfer_gateway.billing.base import CallContext
from transfer_gateway.database import get_session
from transfer_gateway.plugin import TransferPaymentPlugin

router = APIRouter(prefix="/payment-methods", tags=["payment-methods"])


class PaymentMethodRequest(BaseModel):
    tenant_id: str
    kb_account_id: str
    kb_payment_method_id: str
    set_default: bool = False
    properties: dict[str, Any] = Field(default_factory=dict)


class PaymentMethodDetail(BaseModel):
    kb_account_id: str
    kb_payment_method_id: str
    funding_source_id: str
    customer_id: str | None
    is_default: bool

    model_config = {"from_attributes": True}


@router.post("", response_model=PaymentMethodDetail, status_code=201)
async def add_payment_method(
    body: PaymentMethodRequest,
    session: AsyncSession = Depends(get_session),
    plugin: TransferPaymentPlugin = Depends(get_plugin),
):
    record = await plugin.add_payment_method(
        session,
        body.kb_account_id,
        body.kb_payment_method_id,
        body.properties,
        body.set_default,
        CallContext(tenant_id=body.tenant_id),
    )
    return PaymentMethodDetail.model_validate(record)


@router.delete("/{kb_payment_method_id}", status_code=204)
async def delete_payment_method(
    kb_payment_method_id: str,
    tenant_id: str = Query(..., description="Owning tenant"),
    session: AsyncSession = Depends(get_session),
    plugin: TransferPaymentPlugin = Depends(get_plugin),
):
    deleted = await plugin.delete_payment_method(session, kb_payment_method_id, CallContext(tenant_id=tenant_id))
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Payment method not found: {kb_payment_method_id}")
