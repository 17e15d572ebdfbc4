"""End-to-end tests for the HTTP surface, served in-process."""

import httpx
import pytest
import pytest_asyncio

from transfer_gateway.api.deps import get_plugin
from transfer_gateway.database import get_session
from transfer_gateway.main import app

from tests.conftest import KB_ACCOUNT_ID, KB_PAYMENT_METHOD_ID, TENANT_ID, new_id
from tests.fakes import webhook


@pytest_asyncio.fixture
async def api(gateway):
    async def override_session():
        async with gateway.session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_plugin] = lambda: gateway.plugin
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


def _payment_body(**overrides):
    body = {
        "tenant_id": TENANT_ID,
        "kb_account_id": KB_ACCOUNT_ID,
        "kb_payment_id": new_id(),
        "kb_transaction_id": new_id(),
        "kb_payment_method_id": KB_PAYMENT_METHOD_ID,
        "amount": "25.00",
        "currency": "USD",
    }
    body.update(overrides)
    return body


@pytest.mark.asyncio
async def test_health(api):
    response = await api.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_purchase_then_payment_info(api):
    body = _payment_body()
    response = await api.post("/api/payments/purchase", json=body)
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "PENDING"
    assert data["failure_kind"] == "none"
    assert data["first_reference_id"]

    info = await api.get(f"/api/payments/{body['kb_payment_id']}", params={"tenant_id": TENANT_ID})
    assert info.status_code == 200
    attempts = info.json()
    assert len(attempts) == 1
    assert attempts[0]["first_reference_id"] == data["first_reference_id"]
    assert attempts[0]["transaction_type"] == "PURCHASE"


@pytest.mark.asyncio
async def test_unknown_payment_method_is_404(api):
    response = await api.post("/api/payments/purchase", json=_payment_body(kb_payment_method_id=new_id()))
    assert response.status_code == 404
    assert response.json()["error_code"] == "PAYMENT_METHOD_NOT_FOUND"


@pytest.mark.asyncio
async def test_unknown_transaction_type_is_404(api):
    response = await api.post("/api/payments/chargeback", json=_payment_body())
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_amount_is_required(api):
    response = await api.post("/api/payments/refund", json=_payment_body(amount=None))
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_authorize_is_not_offered(api, gateway):
    response = await api.post("/api/payments/authorize", json=_payment_body())
    assert response.status_code == 200
    assert response.json()["status"] == "UNDEFINED"
    assert gateway.client.transfer_requests == []


@pytest.mark.asyncio
async def test_add_and_delete_payment_method(api):
    kb_payment_method_id = new_id()
    created = await api.post("/api/payment-methods", json={
        "tenant_id": TENANT_ID,
        "kb_account_id": KB_ACCOUNT_ID,
        "kb_payment_method_id": kb_payment_method_id,
        "set_default": True,
        "properties": {"fundingSource": "fs_new", "customerId": "cust_1"},
    })
    assert created.status_code == 201
    assert created.json()["funding_source_id"] == "fs_new"

    deleted = await api.delete(f"/api/payment-methods/{kb_payment_method_id}", params={"tenant_id": TENANT_ID})
    assert deleted.status_code == 204

    again = await api.delete(f"/api/payment-methods/{kb_payment_method_id}", params={"tenant_id": TENANT_ID})
    assert again.status_code == 404


@pytest.mark.asyncio
async def test_payment_method_without_funding_source_is_rejected(api):
    response = await api.post("/api/payment-methods", json={
        "tenant_id": TENANT_ID,
        "kb_account_id": KB_ACCOUNT_ID,
        "kb_payment_method_id": new_id(),
        "properties": {},
    })
    assert response.status_code == 400
    assert response.json()["error_code"] == "INVALID_PAYMENT_METHOD"


@pytest.mark.asyncio
async def test_notification_for_unknown_transfer_asks_for_redelivery(api):
    response = await api.post(
        "/api/notifications",
        params={"tenant_id": TENANT_ID},
        content=webhook("customer_transfer_completed", "tr_never_seen"),
    )
    assert response.status_code == 500
    assert response.json()["error_code"] == "DATA_INTEGRITY"


@pytest.mark.asyncio
async def test_irrelevant_notification_is_acknowledged(api):
    response = await api.post(
        "/api/notifications",
        params={"tenant_id": TENANT_ID},
        content=webhook("customer_created", "cust_1"),
    )
    assert response.status_code == 200
    assert response.json() == {"result": "ignored"}


@pytest.mark.asyncio
async def test_malformed_notification_is_400(api):
    response = await api.post("/api/notifications", params={"tenant_id": TENANT_ID}, content="{not json")
    assert response.status_code == 400
    assert response.json()["error_code"] == "MALFORMED_NOTIFICATION"


@pytest.mark.asyncio
async def test_notification_that_is_not_utf8_is_400(api):
    response = await api.post("/api/notifications", params={"tenant_id": TENANT_ID}, content=b'{"id": "\xff\xfe"}')
    assert response.status_code == 400
    assert response.json()["error_code"] == "MALFORMED_NOTIFICATION"
