from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Tuple
from urllib.parse import urlparse


@dataclass(frozen=True)
class Product:
    """A fully resolved product record. Instances are always valid."""

    id: int
    name: str
    price: str  # verbatim text, e.g. "1,234"

    def __post_init__(self) -> None:
        if self.id <= 0:
            raise ValueError(f"product id must be positive, got {self.id!r}")
        if not self.name:
            raise ValueError("product name cannot be empty")
        if not self.price:
            raise ValueError("product price cannot be empty")

    def to_csv(self) -> str:
        # Name is written unquoted, price always quoted: existing output files rely on it.
        return f'{self.id},{self.name},"{self.price}"'

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "price": self.price}

    def __str__(self) -> str:
        return self.to_csv()


@dataclass(frozen=True)
class ExtractionFields:
    """Raw outcome of the three page lookups, before a Product is composed."""

    id: int = 0
    name: str = ""
    price: str = ""

    def missing(self) -> List[str]:
        out: List[str] = []
        if self.id == 0:
            out.append("id")
        if not self.name:
            out.append("name")
        if not self.price:
            out.append("price")
        return out

    def to_product(self) -> Optional[Product]:
        if self.missing():
            return None
        return Product(id=self.id, name=self.name, price=self.price)


@dataclass(frozen=True)
class ProductMarkup:
    """
    Where the three fields live in a product page.
    Each target is an element kind plus its exact class attribute.
    """

    container_kind: str = "div"
    container_class: str = "shouhinmei"
    id_kind: str = "span"
    name_kind: str = "h1"
    name_class: str = "shouhin_name"
    price_kind: str = "span"
    price_class: str = "price"


class SiteAdapter(Protocol):
    """
    Interface for site-specific extraction logic.
    Keep this small and stable so adapters rarely break across upgrades.
    """

    name: str
    domains: List[str]  # e.g. ["example.com", "www.example.com"]

    def matches(self, url: str) -> bool:
        """Return True if this adapter should handle the given URL."""
        ...

    def extract(self, url: str, html: str) -> Tuple[Optional[Product], ExtractionFields]:
        """
        Given page URL and HTML, return the product (or None) and the raw fields.
        Engine owns the HTTP, batching and reporting.
        """
        ...


def domain_of(url: str) -> str:
    return urlparse(url).netloc.lower()
