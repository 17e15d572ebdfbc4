"""
Immutable audit trail for gateway operations.

Every transfer submission and every webhook decision gets an append-only
audit log entry with:
  - Transfer ID (remote reference, when one exists)
  - Payment ID (billing-platform payment)
  - Action (what happened)
  - Details (context, error messages, status transitions)
  - Timestamp (UTC)

Entries join the caller's transaction, so a rolled-back webhook leaves
no trace here either.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from transfer_gateway.models.records import AuditLog

logger = logging.getLogger("transfer_gateway.audit")


async def log_event(
    session: AsyncSession,
    action: str,
    transfer_id: Optional[str] = None,
    kb_payment_id: Optional[str] = None,
    tenant_id: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
) -> AuditLog:
    """
    Create an immutable audit log entry.

    Args:
        session: Database session.
        action: What happened (e.g. "transfer_created", "transaction_transitioned").
        transfer_id: The remote transfer this event relates to.
        kb_payment_id: The billing-platform payment this event relates to.
        tenant_id: Owning tenant.
        details: Arbitrary context (serialized to JSON).

    Returns:
        The created AuditLog record.
    """
    entry = AuditLog(
        transfer_id=transfer_id,
        kb_payment_id=kb_payment_id,
        tenant_id=tenant_id,
        action=action,
        details=json.dumps(details, default=str) if details else None,
        timestamp=datetime.now(timezone.utc),
    )
    session.add(entry)
    logger.info(
        "AUDIT | transfer=%s payment=%s action=%s | %s",
        transfer_id or "-",
        kb_payment_id or "-",
        action,
        json.dumps(details, default=str)[:200] if details else "",
    )
    return entry
