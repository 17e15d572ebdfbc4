"""
HTTP client for the remote transfer processor.

Speaks HAL+JSON over httpx. Connection-level failures are raised as
``RemoteConnectionError``; any 4xx/5xx answer becomes a ``RemoteApiError``
carrying the parsed error code and message.
"""

import logging
from typing import Any, Optional, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from transfer_gateway.client.base import TransferApiClient
from transfer_gateway.client.errors import RemoteApiError, RemoteConnectionError
from transfer_gateway.client.resources import (
    MEDIA_TYPE,
    CatalogResponse,
    FundingSource,
    FundingSourceList,
    TokenResponse,
    Transfer,
    TransferFailure,
    TransferRequest,
)
from transfer_gateway.config import settings

logger = logging.getLogger("transfer_gateway.client")

ResourceT = TypeVar("ResourceT", bound=BaseModel)


class HttpTransferApiClient(TransferApiClient):
    def __init__(
        self,
        base_url: Optional[str] = None,
        oauth_token_url: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._oauth_token_url = oauth_token_url or settings.oauth_token_url
        self._client_id = client_id if client_id is not None else settings.client_id
        self._client_secret = client_secret if client_secret is not None else settings.client_secret
        self._http = httpx.AsyncClient(
            base_url=base_url or settings.api_base_url,
            timeout=timeout if timeout is not None else settings.http_timeout_seconds,
            headers={"Accept": MEDIA_TYPE},
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(
        self,
        method: str,
        url: str,
        token: str,
        *,
        json: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, str]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> httpx.Response:
        request_headers = {"Authorization": f"Bearer {token}"}
        if json is not None:
            request_headers["Content-Type"] = MEDIA_TYPE
        if headers:
            request_headers.update(headers)

        try:
            response = await self._http.request(method, url, json=json, params=params, headers=request_headers)
        except httpx.TransportError as e:
            raise RemoteConnectionError(f"{method} {url} failed: {e}") from e

        if response.is_error:
            error = RemoteApiError.from_response(response.status_code, response.text)
            logger.debug("%s %s -> %d %s", method, url, response.status_code, error.code or "-")
            raise error
        return response

    @staticmethod
    def _parse(model: type[ResourceT], response: httpx.Response) -> ResourceT:
        """Decode a 2xx body; anything unreadable is raised as a ``RemoteApiError``."""
        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise RemoteApiError(
                f"Unexpected {model.__name__} body from {response.request.method} {response.request.url}: {e}",
                status_code=response.status_code,
                body=response.text,
            ) from e

    async def get_root(self, token: str) -> CatalogResponse:
        response = await self._request("GET", "/", token)
        return self._parse(CatalogResponse, response)

    async def get_funding_source(self, token: str, funding_source_id: str) -> FundingSource:
        response = await self._request("GET", f"/funding-sources/{funding_source_id}", token)
        return self._parse(FundingSource, response)

    async def list_account_funding_sources(
        self, token: str, account_href: str, removed: bool = False
    ) -> FundingSourceList:
        response = await self._request(
            "GET",
            f"{account_href.rstrip('/')}/funding-sources",
            token,
            params={"removed": "true" if removed else "false"},
        )
        return self._parse(FundingSourceList, response)

    async def create_transfer(
        self, token: str, request: TransferRequest, idempotency_key: Optional[str] = None
    ) -> str:
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None
        response = await self._request("POST", "/transfers", token, json=request.to_payload(), headers=headers)
        location = response.headers.get("Location")
        if not location:
            raise RemoteApiError(
                "Transfer created but no Location header was returned",
                status_code=response.status_code,
            )
        return location

    async def get_transfer(self, token: str, transfer_href: str) -> Transfer:
        response = await self._request("GET", transfer_href, token)
        return self._parse(Transfer, response)

    async def get_transfer_failure(self, token: str, transfer_href: str) -> TransferFailure:
        response = await self._request("GET", f"{transfer_href.rstrip('/')}/failure", token)
        return self._parse(TransferFailure, response)

    async def refresh_token(self, refresh_token: str) -> TokenResponse:
        try:
            response = await self._http.post(
                self._oauth_token_url,
                data={
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                    "grant_type": "refresh_token",
                    "refresh_token": refresh_token,
                },
                headers={"Accept": "application/json"},
            )
        except httpx.TransportError as e:
            raise RemoteConnectionError(f"Token refresh failed: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            raise RemoteApiError.from_response(response.status_code, response.text)

        token_response = TokenResponse.model_validate(payload)
        if response.is_error and not token_response.error:
            raise RemoteApiError.from_response(response.status_code, response.text)
        return token_response
