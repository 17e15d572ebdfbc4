"""Tests for the plugin facade's pass-through and unsupported operations."""

from decimal import Decimal

import pytest

from transfer_gateway.engine.errors import InvalidPaymentMethodError
from transfer_gateway.models.enums import PaymentPluginStatus, TransactionType

from tests.conftest import KB_ACCOUNT_ID, KB_PAYMENT_METHOD_ID, new_id


@pytest.mark.asyncio
@pytest.mark.parametrize("operation", ["authorize_payment", "capture_payment", "credit_payment"])
async def test_unsupported_operations_do_not_touch_the_processor(gateway, db_session, operation):
    kb_payment_id = new_id()
    outcome = await getattr(gateway.plugin, operation)(
        db_session, KB_ACCOUNT_ID, kb_payment_id, new_id(), KB_PAYMENT_METHOD_ID,
        Decimal("5.00"), "USD", {"source": "test"}, gateway.context,
    )

    assert outcome.status is PaymentPluginStatus.UNDEFINED
    assert outcome.amount == Decimal("5.00")
    assert outcome.properties == {"source": "test"}
    assert gateway.client.transfer_requests == []
    assert await gateway.plugin.get_payment_info(db_session, kb_payment_id, gateway.context) == []


@pytest.mark.asyncio
async def test_void_is_undefined(gateway, db_session):
    outcome = await gateway.plugin.void_payment(
        db_session, KB_ACCOUNT_ID, new_id(), new_id(), KB_PAYMENT_METHOD_ID, None, gateway.context,
    )
    assert outcome.status is PaymentPluginStatus.UNDEFINED
    assert outcome.transaction_type is TransactionType.VOID


def test_no_hosted_payment_form(gateway):
    assert gateway.plugin.build_form_descriptor(KB_ACCOUNT_ID, None, None, gateway.context) is None


@pytest.mark.asyncio
async def test_refund_after_purchase_shows_both_attempts(gateway, db_session):
    kb_payment_id = new_id()
    args = (db_session, KB_ACCOUNT_ID, kb_payment_id)

    await gateway.plugin.purchase_payment(
        *args, new_id(), KB_PAYMENT_METHOD_ID, Decimal("25.00"), "USD", None, gateway.context,
    )
    await gateway.plugin.refund_payment(
        *args, new_id(), KB_PAYMENT_METHOD_ID, Decimal("10.00"), "USD", None, gateway.context,
    )

    info = await gateway.plugin.get_payment_info(db_session, kb_payment_id, gateway.context)
    assert [o.transaction_type for o in info] == [TransactionType.PURCHASE, TransactionType.REFUND]
    assert all(o.status is PaymentPluginStatus.PENDING for o in info)
    assert info[0].first_reference_id != info[1].first_reference_id


@pytest.mark.asyncio
async def test_payment_method_requires_funding_source(gateway, db_session):
    with pytest.raises(InvalidPaymentMethodError):
        await gateway.plugin.add_payment_method(
            db_session, KB_ACCOUNT_ID, new_id(), {"customerId": "cust_1"}, False, gateway.context,
        )
