"""
Bearer credential management for remote calls.

The processor has no token-validation endpoint, so a token is checked by
making the cheapest authenticated call (the API root). On an expired or
invalid token the pair is refreshed under a per-tenant lock:

  1. Reload the pair (another caller may have refreshed it already)
  2. If the stored access token differs from the one that just failed,
     adopt it and stop
  3. Otherwise call the refresh endpoint and persist the new pair

Refresh tokens are single-use, so two concurrent refreshes for the same
tenant would revoke each other; the lock is what prevents that.
"""

import asyncio
import logging
from collections import defaultdict

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from transfer_gateway.client.base import TransferApiClient
from transfer_gateway.client.errors import RemoteApiError
from transfer_gateway.engine.errors import PersistenceError, RefreshFailedError, TokenMissingError
from transfer_gateway.ledger.repository import TokenStore

logger = logging.getLogger("transfer_gateway.token_guard")


class TokenGuard:
    """
    Per-tenant credential cache.

    ``ensure_valid_token`` returns the bearer token to pass into the
    remote client for the rest of the operation.
    """

    def __init__(self, client: TransferApiClient, session_factory: async_sessionmaker[AsyncSession]):
        self._client = client
        self._session_factory = session_factory
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._credentials: dict[str, str] = {}

    def current_token(self, tenant_id: str) -> str | None:
        return self._credentials.get(tenant_id)

    async def ensure_valid_token(self, tenant_id: str) -> str:
        """
        Raises:
            TokenMissingError: No pair on file for the tenant.
            RefreshFailedError: The refresh endpoint returned an error payload.
            PersistenceError: The token store failed.
            RemoteApiError: The probe failed for a reason other than the token.
        """
        access_token, _ = await self._load_pair(tenant_id)
        self._credentials[tenant_id] = access_token

        try:
            await self._client.get_root(access_token)
        except RemoteApiError as e:
            if not e.is_auth_error:
                raise
            logger.info("Access token for tenant %s rejected (%s), refreshing", tenant_id, e.code or e.status_code)
            return await self._refresh(tenant_id, stale_token=access_token)

        return access_token

    async def _refresh(self, tenant_id: str, stale_token: str) -> str:
        async with self._locks[tenant_id]:
            access_token, refresh_token = await self._load_pair(tenant_id)
            if access_token != stale_token:
                logger.debug("Tenant %s token already refreshed by a concurrent call", tenant_id)
                self._credentials[tenant_id] = access_token
                return access_token

            response = await self._client.refresh_token(refresh_token)
            if response.error or not response.access_token:
                raise RefreshFailedError(
                    f"There was an error refreshing tokens for tenant {tenant_id}: "
                    f"{response.error_description or response.error or 'no access token returned'}",
                    code=response.error,
                )

            if response.access_token != access_token:
                await self._save_pair(tenant_id, response.access_token, response.refresh_token or refresh_token)
                logger.info("Stored refreshed token pair for tenant %s", tenant_id)

            self._credentials[tenant_id] = response.access_token
            return response.access_token

    async def _load_pair(self, tenant_id: str) -> tuple[str, str]:
        try:
            async with self._session_factory() as session:
                record = await TokenStore(session).get(tenant_id)
        except SQLAlchemyError as e:
            raise PersistenceError(f"There was an error loading the token pair for tenant {tenant_id}: {e}") from e

        if record is None:
            raise TokenMissingError(f"Tokens not found for tenant {tenant_id}")
        return record.access_token, record.refresh_token

    async def _save_pair(self, tenant_id: str, access_token: str, refresh_token: str) -> None:
        try:
            async with self._session_factory() as session:
                await TokenStore(session).save(tenant_id, access_token, refresh_token)
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"There was an error saving the token pair for tenant {tenant_id}: {e}") from e
