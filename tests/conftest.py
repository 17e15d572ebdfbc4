"""Shared test fixtures."""

import uuid
from dataclasses import dataclass

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from transfer_gateway.billing.base import CallContext
from transfer_gateway.client.mock_client import MockTransferApiClient
from transfer_gateway.engine.reconciler import NotificationReconciler
from transfer_gateway.engine.token_guard import TokenGuard
from transfer_gateway.engine.transfer_executor import TransferExecutor
from transfer_gateway.ledger.repository import TokenStore
from transfer_gateway.models.records import Base, PaymentMethodRecord
from transfer_gateway.plugin import TransferPaymentPlugin

from tests.fakes import FakeBillingPlatform

TENANT_ID = "11111111-1111-1111-1111-111111111111"
KB_ACCOUNT_ID = "aaaaaaaa-0000-0000-0000-000000000001"
KB_PAYMENT_METHOD_ID = "bbbbbbbb-0000-0000-0000-000000000001"
CUSTOMER_FUNDING_SOURCE_ID = "customer-fs-0001"


@dataclass
class Gateway:
    """Everything a test needs, wired the way the app wires it."""

    client: MockTransferApiClient
    billing: FakeBillingPlatform
    session_factory: async_sessionmaker
    token_guard: TokenGuard
    executor: TransferExecutor
    reconciler: NotificationReconciler
    plugin: TransferPaymentPlugin
    context: CallContext

    @property
    def customer_link(self) -> str:
        return self.client.funding_sources[CUSTOMER_FUNDING_SOURCE_ID].links["self"].href


def new_id() -> str:
    return str(uuid.uuid4())


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """A fresh file-backed database per test (shared by concurrent sessions)."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'gateway.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def mock_client():
    client = MockTransferApiClient()
    client.add_funding_source(CUSTOMER_FUNDING_SOURCE_ID, name="Customer Checking")
    client.add_funding_source("merchant-fs-removed", name="Old Merchant Account", merchant=True, removed=True)
    client.add_funding_source("merchant-fs-primary", name="Merchant Operating", merchant=True)
    client.add_funding_source("merchant-fs-secondary", name="Merchant Reserve", merchant=True)
    return client


@pytest_asyncio.fixture
async def gateway(session_factory, mock_client):
    """Gateway for one tenant with a token pair and a customer payment method on file."""
    access_token, refresh_token = mock_client.issue_tokens()
    async with session_factory() as session:
        await TokenStore(session).save(TENANT_ID, access_token, refresh_token)
        session.add(PaymentMethodRecord(
            kb_account_id=KB_ACCOUNT_ID,
            kb_payment_method_id=KB_PAYMENT_METHOD_ID,
            funding_source_id=CUSTOMER_FUNDING_SOURCE_ID,
            is_default=True,
            tenant_id=TENANT_ID,
        ))
        await session.commit()

    billing = FakeBillingPlatform()
    token_guard = TokenGuard(mock_client, session_factory)
    executor = TransferExecutor(mock_client, token_guard)
    reconciler = NotificationReconciler(billing)
    return Gateway(
        client=mock_client,
        billing=billing,
        session_factory=session_factory,
        token_guard=token_guard,
        executor=executor,
        reconciler=reconciler,
        plugin=TransferPaymentPlugin(executor, reconciler),
        context=CallContext(tenant_id=TENANT_ID),
    )
