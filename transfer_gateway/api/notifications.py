"""
Webhook receiver.

POST /notifications?tenant_id=... - Raw processor event. A 2xx answer
tells the sender to stop; any 5xx makes it redeliver, which is what we
want for infrastructure and integrity failures.
"""

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from transfer_gateway.api.deps import get_plugin
from transfer_gateway.billing.base import CallContext
from transfer_gateway.database import get_session
from transfer_gateway.engine.errors import MalformedNotificationError
from transfer_gateway.plugin import TransferPaymentPlugin

router = APIRouter(prefix="/notifications", tags=["notifications"])


class NotificationAck(BaseModel):
    result: str


@router.post("", response_model=NotificationAck)
async def receive_notification(
    request: Request,
    tenant_id: str = Query(..., description="Owning tenant"),
    session: AsyncSession = Depends(get_session),
    plugin: TransferPaymentPlugin = Depends(get_plugin),
):
    body = await request.body()
    try:
        raw = body.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedNotificationError(f"Webhook payload is not valid UTF-8: {e}") from e
    ack = await plugin.process_notification(session, raw, None, CallContext(tenant_id=tenant_id))
    return NotificationAck(result=ack.result.value)
