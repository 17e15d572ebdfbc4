"""
Typed views of the remote processor's HAL+JSON resources.

Only the fields this gateway reads are declared; anything else the
processor sends is kept (``extra="allow"``) so snapshots stay complete.
"""

from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

SELF = "self"
SOURCE = "source"
DESTINATION = "destination"
RESOURCE = "resource"
ACCOUNT = "account"

MEDIA_TYPE = "application/vnd.dwolla.v1.hal+json"


def id_from_href(href: str) -> str:
    """Last path segment of a resource link, e.g. ``.../transfers/abc`` -> ``abc``."""
    return href.split("?", 1)[0].rstrip("/").rsplit("/", 1)[-1]


class _Resource(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class HalLink(_Resource):
    href: str
    type: Optional[str] = None
    resource_type: Optional[str] = Field(default=None, alias="resource-type")


class Amount(_Resource):
    value: str  # decimal string, never a float
    currency: str


class TransferRequest(BaseModel):
    """Body of a transfer-creation call. Built once per attempt."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    links: dict[str, HalLink] = Field(alias="_links")
    amount: Amount

    @classmethod
    def build(cls, source: HalLink, destination: HalLink, amount: Decimal, currency: str) -> "TransferRequest":
        return cls(
            links={SOURCE: source, DESTINATION: destination},
            amount=Amount(value=format(amount, "f"), currency=currency),
        )

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class Transfer(_Resource):
    id: str
    status: str
    amount: Optional[Amount] = None
    created: Optional[str] = None
    links: dict[str, HalLink] = Field(default_factory=dict, alias="_links")


class TransferFailure(_Resource):
    code: str
    description: Optional[str] = None
    explanation: Optional[str] = None


class FundingSource(_Resource):
    id: str
    status: Optional[str] = None
    type: Optional[str] = None
    name: Optional[str] = None
    removed: bool = False
    links: dict[str, HalLink] = Field(default_factory=dict, alias="_links")


class FundingSourceEmbedded(_Resource):
    funding_sources: list[FundingSource] = Field(default_factory=list, alias="funding-sources")


class FundingSourceList(_Resource):
    links: dict[str, HalLink] = Field(default_factory=dict, alias="_links")
    embedded: FundingSourceEmbedded = Field(default_factory=FundingSourceEmbedded, alias="_embedded")

    @property
    def funding_sources(self) -> list[FundingSource]:
        return self.embedded.funding_sources


class CatalogResponse(_Resource):
    """Root resource of the API; its ``account`` link is the merchant account."""

    links: dict[str, HalLink] = Field(default_factory=dict, alias="_links")


class TokenResponse(_Resource):
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    token_type: Optional[str] = None
    error: Optional[str] = None
    error_description: Optional[str] = None


class Webhook(_Resource):
    """Inbound event notification."""

    id: str
    topic: str
    resource_id: Optional[str] = Field(default=None, alias="resourceId")
    timestamp: Optional[str] = None
    created: Optional[str] = None
    links: dict[str, HalLink] = Field(default_factory=dict, alias="_links")

    @property
    def resource_href(self) -> Optional[str]:
        link = self.links.get(RESOURCE)
        return link.href if link else None
