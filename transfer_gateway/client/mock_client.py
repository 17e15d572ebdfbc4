"""
In-memory mock of the remote transfer processor.

Simulates the behavior the gateway depends on:
  - Access tokens that expire, refresh tokens that are single-use
    (refreshing revokes the old pair, like the real OAuth server)
  - A merchant account with an ordered funding-source listing
  - Transfers created by location reference, fetched afterwards
  - Configurable rejections and transfer statuses
  - Configurable latency so concurrent callers interleave

Used for local serving (``use_mock_client``) and throughout the tests.
"""

import asyncio
import json
import uuid
from typing import Optional

from transfer_gateway.client.base import TransferApiClient
from transfer_gateway.client.errors import EXPIRED_ACCESS_TOKEN_ERROR_CODE, RemoteApiError
from transfer_gateway.client.resources import (
    ACCOUNT,
    DESTINATION,
    MEDIA_TYPE,
    SELF,
    SOURCE,
    CatalogResponse,
    FundingSource,
    FundingSourceEmbedded,
    FundingSourceList,
    HalLink,
    TokenResponse,
    Transfer,
    TransferFailure,
    TransferRequest,
    id_from_href,
)


class MockTransferApiClient(TransferApiClient):
    def __init__(
        self,
        base_url: str = "https://api.mock.local",
        transfer_status: str = "pending",
        latency_ms: int = 0,
    ):
        self.base_url = base_url.rstrip("/")
        self.transfer_status = transfer_status
        self.reject_code: Optional[str] = None  # set to make transfer creation fail
        self._latency_ms = latency_ms

        self.account_id = uuid.uuid4().hex
        self.funding_sources: dict[str, FundingSource] = {}
        self.merchant_sources: list[str] = []
        self.transfers: dict[str, Transfer] = {}
        self.failures: dict[str, TransferFailure] = {}
        self.transfer_requests: list[TransferRequest] = []
        self._idempotency: dict[str, str] = {}

        self._access_tokens: set[str] = set()
        self._refresh_tokens: dict[str, str] = {}  # refresh -> access
        self.refresh_calls = 0

    @property
    def account_href(self) -> str:
        return f"{self.base_url}/accounts/{self.account_id}"

    # -- setup helpers --------------------------------------------------

    def issue_tokens(self) -> tuple[str, str]:
        access, refresh = f"at_{uuid.uuid4().hex}", f"rt_{uuid.uuid4().hex}"
        self._access_tokens.add(access)
        self._refresh_tokens[refresh] = access
        return access, refresh

    def expire_access_token(self, access_token: str) -> None:
        self._access_tokens.discard(access_token)

    def add_funding_source(
        self,
        funding_source_id: Optional[str] = None,
        name: str = "Checking",
        merchant: bool = False,
        removed: bool = False,
    ) -> FundingSource:
        fs_id = funding_source_id or uuid.uuid4().hex
        source = FundingSource(
            id=fs_id,
            status="verified",
            type="bank",
            name=name,
            removed=removed,
            links={SELF: HalLink(href=f"{self.base_url}/funding-sources/{fs_id}", type=MEDIA_TYPE)},
        )
        self.funding_sources[fs_id] = source
        if merchant:
            self.merchant_sources.append(fs_id)
        return source

    # -- TransferApiClient ----------------------------------------------

    async def _authorize(self, token: str) -> None:
        await asyncio.sleep(self._latency_ms / 1000)
        if token not in self._access_tokens:
            body = json.dumps({"code": EXPIRED_ACCESS_TOKEN_ERROR_CODE, "message": "Invalid access token."})
            raise RemoteApiError.from_response(401, body)

    def _not_found(self, what: str) -> RemoteApiError:
        body = json.dumps({"code": "NotFound", "message": f"{what} not found."})
        return RemoteApiError.from_response(404, body)

    async def get_root(self, token: str) -> CatalogResponse:
        await self._authorize(token)
        return CatalogResponse(
            links={
                SELF: HalLink(href=f"{self.base_url}/"),
                ACCOUNT: HalLink(href=self.account_href),
            }
        )

    async def get_funding_source(self, token: str, funding_source_id: str) -> FundingSource:
        await self._authorize(token)
        source = self.funding_sources.get(funding_source_id)
        if source is None:
            raise self._not_found("Funding source")
        return source

    async def list_account_funding_sources(
        self, token: str, account_href: str, removed: bool = False
    ) -> FundingSourceList:
        await self._authorize(token)
        if id_from_href(account_href) != self.account_id:
            raise self._not_found("Account")
        sources = [self.funding_sources[fs_id] for fs_id in self.merchant_sources]
        if not removed:
            sources = [s for s in sources if not s.removed]
        return FundingSourceList(embedded=FundingSourceEmbedded(funding_sources=sources))

    async def create_transfer(
        self, token: str, request: TransferRequest, idempotency_key: Optional[str] = None
    ) -> str:
        await self._authorize(token)
        if idempotency_key and idempotency_key in self._idempotency:
            return self._idempotency[idempotency_key]

        if self.reject_code:
            body = json.dumps({
                "code": self.reject_code,
                "message": "Transfer rejected by mock processor.",
                "_embedded": {"errors": [{"code": "Invalid", "message": "Rejected.", "path": "/_links/source/href"}]},
            })
            raise RemoteApiError.from_response(400, body)

        self.transfer_requests.append(request)
        transfer_id = uuid.uuid4().hex
        href = f"{self.base_url}/transfers/{transfer_id}"
        self.transfers[transfer_id] = Transfer(
            id=transfer_id,
            status=self.transfer_status,
            amount=request.amount,
            links={
                SELF: HalLink(href=href),
                SOURCE: request.links[SOURCE],
                DESTINATION: request.links[DESTINATION],
            },
        )
        if self.transfer_status == "failed":
            self.failures[transfer_id] = TransferFailure(code="R01", description="Insufficient Funds")
        if idempotency_key:
            self._idempotency[idempotency_key] = href
        return href

    async def get_transfer(self, token: str, transfer_href: str) -> Transfer:
        await self._authorize(token)
        transfer = self.transfers.get(id_from_href(transfer_href))
        if transfer is None:
            raise self._not_found("Transfer")
        return transfer

    async def get_transfer_failure(self, token: str, transfer_href: str) -> TransferFailure:
        await self._authorize(token)
        failure = self.failures.get(id_from_href(transfer_href))
        if failure is None:
            raise self._not_found("Transfer failure")
        return failure

    async def refresh_token(self, refresh_token: str) -> TokenResponse:
        await asyncio.sleep(self._latency_ms / 1000)
        self.refresh_calls += 1
        old_access = self._refresh_tokens.pop(refresh_token, None)
        if old_access is None:
            return TokenResponse(error="invalid_grant", error_description="Invalid refresh token.")
        self._access_tokens.discard(old_access)
        access, refresh = self.issue_tokens()
        return TokenResponse(access_token=access, refresh_token=refresh, expires_in=3600, token_type="bearer")
