from __future__ import annotations

from typing import List, Optional, Tuple

from .base import ExtractionFields, Product, ProductMarkup, domain_of
from ..utils.parsing import DEFAULT_MARKUP, extract_product


class MarkupAdapter:
    """
    A domain-agnostic adapter driven purely by a ProductMarkup description.
    Acts as the fallback when no specific adapter matches a URL.
    """
    name = "generic"
    domains: List[str] = []  # matches any

    def __init__(self, markup: Optional[ProductMarkup] = None) -> None:
        self.markup = markup or DEFAULT_MARKUP

    def matches(self, url: str) -> bool:
        if not self.domains:
            return True
        return domain_of(url) in self.domains

    def extract(self, url: str, html: str) -> Tuple[Optional[Product], ExtractionFields]:
        return extract_product(html, self.markup)
