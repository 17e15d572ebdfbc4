"""
Abstract remote processor client.

Every authenticated call takes the bearer token as an argument: the
client holds no credential of its own, so one instance serves every
tenant. Implementations raise ``RemoteApiError`` for error responses and
``RemoteConnectionError`` when no response arrives.
"""

from abc import ABC, abstractmethod
from typing import Optional

from transfer_gateway.client.resources import (
    CatalogResponse,
    FundingSource,
    FundingSourceList,
    TokenResponse,
    Transfer,
    TransferFailure,
    TransferRequest,
)


class TransferApiClient(ABC):
    """Abstract base class for transfer processor clients."""

    @abstractmethod
    async def get_root(self, token: str) -> CatalogResponse:
        """
        Fetch the API root.

        Also the cheapest authenticated call there is, used to probe
        whether a token is still accepted.
        """
        ...

    @abstractmethod
    async def get_funding_source(self, token: str, funding_source_id: str) -> FundingSource:
        ...

    @abstractmethod
    async def list_account_funding_sources(
        self, token: str, account_href: str, removed: bool = False
    ) -> FundingSourceList:
        ...

    @abstractmethod
    async def create_transfer(
        self, token: str, request: TransferRequest, idempotency_key: Optional[str] = None
    ) -> str:
        """
        Submit a transfer.

        Returns the location href of the created transfer; the processor
        does not return the resource itself.
        """
        ...

    @abstractmethod
    async def get_transfer(self, token: str, transfer_href: str) -> Transfer:
        ...

    @abstractmethod
    async def get_transfer_failure(self, token: str, transfer_href: str) -> TransferFailure:
        ...

    @abstractmethod
    async def refresh_token(self, refresh_token: str) -> TokenResponse:
        """
        Exchange a refresh token for a new token pair.

        A refusal comes back as a ``TokenResponse`` with ``error`` set,
        not as an exception.
        """
        ...
