# src/models/parse_response.py

"""Response envelopes for the server cache and the client freshness cache."""

from dataclasses import dataclass, field
from typing import Any, Protocol

from src.models.product import ProductRecord


@dataclass
class ParseResponse:
    """Products extracted from one category URL at one point in time."""

    url: str
    count: int
    products: list[ProductRecord] = field(
        default_factory=lambda: list[ProductRecord]()
    )
    fetched_at_iso: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the public ``{products, fetchedAtISO}`` body."""
        return {
            "products": [p.to_dict() for p in self.products],
            "fetchedAtISO": self.fetched_at_iso,
        }


class ProductSource(Protocol):
    """Anything that can answer ``(url, count)`` with a parse response."""

    def load_products_with_meta(
        self, url: str, count: int,
    ) -> ParseResponse: ...


@dataclass
class ClientCachePayload:
    """Listing persisted by the client between sessions."""

    url: str
    page: int
    has_more: bool
    fetched_at_iso: str
    expires_at_iso: str
    products: list[ProductRecord] = field(
        default_factory=lambda: list[ProductRecord]()
    )

    def to_dict(self) -> dict[str, Any]:
        """Serialise using the camelCase keys of the on-disk format."""
        return {
            "url": self.url,
            "page": self.page,
            "hasMore": self.has_more,
            "fetchedAtISO": self.fetched_at_iso,
            "expiresAtISO": self.expires_at_iso,
            "products": [p.to_dict() for p in self.products],
        }

    @staticmethod
    def has_valid_shape(data: object) -> bool:
        """Return True if *data* carries every field with the right type."""
        if not isinstance(data, dict):
            return False
        return (
            isinstance(data.get("url"), str)
            and isinstance(data.get("page"), int)
            and not isinstance(data.get("page"), bool)
            and isinstance(data.get("hasMore"), bool)
            and isinstance(data.get("fetchedAtISO"), str)
            and isinstance(data.get("expiresAtISO"), str)
            and isinstance(data.get("products"), list)
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ClientCachePayload":
        """Build a payload from a dict already checked by ``has_valid_shape``."""
        return cls(
            url=data["url"],
            page=data["page"],
            has_more=data["hasMore"],
            fetched_at_iso=data["fetchedAtISO"],
            expires_at_iso=data["expiresAtISO"],
            products=[
                ProductRecord.from_dict(p)
                for p in data["products"]
                if isinstance(p, dict)
            ],
        )
