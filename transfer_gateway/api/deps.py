"""Plugin wiring shared by the routers."""

from functools import lru_cache

from transfer_gateway.billing.http_billing import HttpBillingPlatform
from transfer_gateway.client.base import TransferApiClient
from transfer_gateway.client.http_client import HttpTransferApiClient
from transfer_gateway.client.mock_client import MockTransferApiClient
from transfer_gateway.config import settings
from transfer_gateway.database import async_session
from transfer_gateway.engine.reconciler import NotificationReconciler
from transfer_gateway.engine.token_guard import TokenGuard
from transfer_gateway.engine.transfer_executor import TransferExecutor
from transfer_gateway.plugin import TransferPaymentPlugin


@lru_cache
def get_plugin() -> TransferPaymentPlugin:
    """One plugin per process; the token guard's per-tenant locks live in it."""
    client: TransferApiClient = MockTransferApiClient() if settings.use_mock_client else HttpTransferApiClient()
    token_guard = TokenGuard(client, async_session)
    executor = TransferExecutor(client, token_guard, settings.merchant_funding_source_id)
    reconciler = NotificationReconciler(HttpBillingPlatform())
    return TransferPaymentPlugin(executor, reconciler)
