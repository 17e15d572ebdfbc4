"""SQLAlchemy models for the transfer gateway."""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PaymentMethodRecord(Base):
    """Maps a billing-platform payment method to a remote funding source."""

    __tablename__ = "gateway_payment_methods"
    __table_args__ = (
        UniqueConstraint("kb_payment_method_id", "tenant_id", name="uq_payment_method_tenant"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    kb_account_id = Column(String(36), nullable=False, index=True)
    kb_payment_method_id = Column(String(36), nullable=False)
    funding_source_id = Column(String(64), nullable=False)
    customer_id = Column(String(64), nullable=True)
    is_default = Column(Boolean, nullable=False, default=False)
    is_deleted = Column(Boolean, nullable=False, default=False)
    tenant_id = Column(String(36), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class ResponseRecord(Base):
    """
    One row per transaction attempt, success or failure.

    Created when the transfer call returns; afterwards only ``transfer_status``
    changes, driven by webhooks. Rows are never deleted.
    """

    __tablename__ = "gateway_responses"
    __table_args__ = (
        UniqueConstraint("kb_payment_transaction_id", "tenant_id", name="uq_response_transaction_tenant"),
        Index("ix_response_transfer_tenant", "transfer_id", "tenant_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    kb_account_id = Column(String(36), nullable=False)
    kb_payment_id = Column(String(36), nullable=False, index=True)
    kb_payment_transaction_id = Column(String(36), nullable=False)
    transaction_type = Column(String(32), nullable=False)
    amount = Column(Numeric(15, 9), nullable=True)
    currency = Column(String(3), nullable=True)
    transfer_id = Column(String(64), nullable=True)
    transfer_status = Column(String(32), nullable=True)
    transfer_snapshot = Column(Text, nullable=True)  # JSON of the fetched transfer (+ failure)
    error_code = Column(String(64), nullable=True)
    error_message = Column(Text, nullable=True)
    additional_data = Column(Text, nullable=True)  # JSON of plugin properties
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    tenant_id = Column(String(36), nullable=False)


class TokenRecord(Base):
    """The current access/refresh token pair of a tenant."""

    __tablename__ = "gateway_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(String(36), nullable=False, unique=True)
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class NotificationRecord(Base):
    """
    Inbound webhook, stored once.

    The unique constraint on the webhook's own id is what makes
    processing at-most-once.
    """

    __tablename__ = "gateway_notifications"
    __table_args__ = (
        UniqueConstraint("webhook_id", "tenant_id", name="uq_notification_webhook_tenant"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    webhook_id = Column(String(64), nullable=False)
    topic = Column(String(64), nullable=False)
    resource_id = Column(String(64), nullable=True)
    resource_href = Column(String(255), nullable=True)
    raw_payload = Column(Text, nullable=False)
    received_at = Column(DateTime(timezone=True), default=_utcnow)
    tenant_id = Column(String(36), nullable=False)


class AuditLog(Base):
    """
    Immutable audit trail entry.

    Transfer submissions and webhook reconciliation decisions get an
    entry. These are append-only and never modified.
    """

    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transfer_id = Column(String(64), nullable=True, index=True)
    kb_payment_id = Column(String(36), nullable=True, index=True)
    action = Column(String(50), nullable=False)
    details = Column(Text, nullable=True)
    timestamp = Column(DateTime(timezone=True), default=_utcnow)
    tenant_id = Column(String(36), nullable=True)
