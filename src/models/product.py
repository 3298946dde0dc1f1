# src/models/product.py

"""Product record shared by the extraction pipeline, API and client."""

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class RawCard:
    """Unnormalised fields pulled out of one card by an extraction strategy."""

    source_id: str = ""
    name: str = ""
    href: str = ""
    price: int | float | str | None = None
    rating: float | None = None
    image_candidates: list[str] = field(
        default_factory=lambda: list[str]()
    )


@dataclass
class ProductRecord:
    """A single listing entry extracted from a category page."""

    id: int
    name: str
    description: str = ""
    price: int = 0
    rating: float = 4.7
    image: str = ""
    images: list[str] = field(default_factory=lambda: list[str]())
    link: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the JSON shape served over HTTP."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProductRecord":
        """Build a record from its JSON shape, tolerating missing keys."""
        images = [str(i) for i in data.get("images") or []]
        return cls(
            id=int(data.get("id", 0) or 0),
            name=str(data.get("name", "") or ""),
            description=str(data.get("description", "") or ""),
            price=int(data.get("price", 0) or 0),
            rating=float(data.get("rating", 4.7) or 4.7),
            image=str(data.get("image", "") or (images[0] if images else "")),
            images=images,
            link=str(data.get("link", "") or ""),
        )
