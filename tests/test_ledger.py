"""Tests for the response ledger and the payment method store."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from transfer_gateway.engine.errors import DataIntegrityError
from transfer_gateway.ledger.repository import PaymentMethodStore, ResponseLedger
from transfer_gateway.models.enums import TransactionType

from tests.conftest import KB_ACCOUNT_ID, TENANT_ID, new_id


def _success_kwargs(**overrides):
    kwargs = dict(
        kb_account_id=KB_ACCOUNT_ID,
        kb_payment_id=new_id(),
        kb_transaction_id=new_id(),
        transaction_type=TransactionType.PURCHASE,
        amount=Decimal("25.00"),
        currency="USD",
        transfer_id="tr_001",
        transfer_status="pending",
        snapshot={"transfer": {"id": "tr_001"}},
        properties=None,
        created_at=datetime.now(timezone.utc),
        tenant_id=TENANT_ID,
    )
    kwargs.update(overrides)
    return kwargs


@pytest.mark.asyncio
async def test_recording_the_same_attempt_updates_in_place(db_session):
    ledger = ResponseLedger(db_session)
    kwargs = _success_kwargs()

    first = await ledger.record_success(**kwargs)
    second = await ledger.record_success(**{**kwargs, "transfer_status": "processed"})
    await db_session.commit()

    assert first.id == second.id
    rows = await ledger.list_by_payment(kwargs["kb_payment_id"], TENANT_ID)
    assert len(rows) == 1
    assert rows[0].transfer_status == "processed"


@pytest.mark.asyncio
async def test_lookup_by_transfer_id(db_session):
    ledger = ResponseLedger(db_session)
    await ledger.record_success(**_success_kwargs(transfer_id="tr_lookup"))
    await db_session.commit()

    found = await ledger.get_by_transfer_id("tr_lookup", TENANT_ID)
    assert found is not None
    assert found.transfer_id == "tr_lookup"

    assert await ledger.get_by_transfer_id("tr_lookup", "other-tenant") is None
    assert await ledger.get_by_transfer_id("tr_missing", TENANT_ID) is None


@pytest.mark.asyncio
async def test_two_rows_for_one_transfer_is_an_integrity_violation(db_session):
    ledger = ResponseLedger(db_session)
    await ledger.record_success(**_success_kwargs(transfer_id="tr_dup"))
    await ledger.record_success(**_success_kwargs(transfer_id="tr_dup"))
    await db_session.commit()

    with pytest.raises(DataIntegrityError):
        await ledger.get_by_transfer_id("tr_dup", TENANT_ID)


@pytest.mark.asyncio
async def test_update_status(db_session):
    ledger = ResponseLedger(db_session)
    await ledger.record_success(**_success_kwargs(transfer_id="tr_status"))
    await db_session.commit()

    assert await ledger.update_status("tr_status", "processed", TENANT_ID) == 1
    assert await ledger.update_status("tr_unknown", "processed", TENANT_ID) == 0
    await db_session.commit()

    record = await ledger.get_by_transfer_id("tr_status", TENANT_ID)
    assert record.transfer_status == "processed"


@pytest.mark.asyncio
async def test_failure_record_keeps_error_details(db_session):
    ledger = ResponseLedger(db_session)
    kb_payment_id = new_id()
    record = await ledger.record_failure(
        kb_account_id=KB_ACCOUNT_ID,
        kb_payment_id=kb_payment_id,
        kb_transaction_id=new_id(),
        transaction_type=TransactionType.REFUND,
        amount=Decimal("10.00"),
        currency="USD",
        error_code="ValidationError",
        error_message="Validation error(s) present.",
        properties={"reason": "test"},
        created_at=datetime.now(timezone.utc),
        tenant_id=TENANT_ID,
    )
    await db_session.commit()

    assert record.transfer_id is None
    assert record.error_code == "ValidationError"
    assert record.transaction_type == "REFUND"


@pytest.mark.asyncio
async def test_deleted_payment_method_is_not_found(db_session):
    store = PaymentMethodStore(db_session)
    kb_payment_method_id = new_id()
    await store.add(
        kb_account_id=KB_ACCOUNT_ID,
        kb_payment_method_id=kb_payment_method_id,
        funding_source_id="fs_001",
        customer_id=None,
        is_default=True,
        tenant_id=TENANT_ID,
    )
    await db_session.commit()

    assert (await store.get(kb_payment_method_id, TENANT_ID)).funding_source_id == "fs_001"
    assert await store.delete(kb_payment_method_id, TENANT_ID) is True
    await db_session.commit()

    assert await store.get(kb_payment_method_id, TENANT_ID) is None
    assert await store.delete(kb_payment_method_id, TENANT_ID) is False


@pytest.mark.asyncio
async def test_rejection_never_replaces_a_created_transfer(db_session):
    ledger = ResponseLedger(db_session)
    kwargs = _success_kwargs(transfer_id="tr_kept")
    await ledger.record_success(**kwargs)
    await db_session.commit()

    record = await ledger.record_failure(
        kb_account_id=KB_ACCOUNT_ID,
        kb_payment_id=kwargs["kb_payment_id"],
        kb_transaction_id=kwargs["kb_transaction_id"],
        transaction_type=TransactionType.PURCHASE,
        amount=Decimal("25.00"),
        currency="USD",
        error_code="ValidationError",
        error_message="Validation error(s) present.",
        properties=None,
        created_at=datetime.now(timezone.utc),
        tenant_id=TENANT_ID,
    )
    await db_session.commit()

    assert record.transfer_id == "tr_kept"
    assert record.transfer_status == "pending"
    assert record.error_code is None
    rows = await ledger.list_by_payment(kwargs["kb_payment_id"], TENANT_ID)
    assert len(rows) == 1


@pytest.mark.asyncio
async def test_success_after_rejection_clears_the_error(db_session):
    ledger = ResponseLedger(db_session)
    kwargs = _success_kwargs(transfer_id="tr_retry")
    await ledger.record_failure(
        kb_account_id=KB_ACCOUNT_ID,
        kb_payment_id=kwargs["kb_payment_id"],
        kb_transaction_id=kwargs["kb_transaction_id"],
        transaction_type=TransactionType.PURCHASE,
        amount=Decimal("25.00"),
        currency="USD",
        error_code="ConnectionError",
        error_message="timed out",
        properties=None,
        created_at=datetime.now(timezone.utc),
        tenant_id=TENANT_ID,
    )
    record = await ledger.record_success(**kwargs)
    await db_session.commit()

    assert record.transfer_id == "tr_retry"
    assert record.error_code is None
    assert record.error_message is None
