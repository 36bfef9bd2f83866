from __future__ import annotations

import re
from typing import Optional, Tuple

from bs4 import BeautifulSoup, Tag

from ..adapters.base import ExtractionFields, Product, ProductMarkup

# First run of decimal digits, e.g. "SKU 4471" -> "4471".
ID_PATTERN = re.compile(r"[0-9]+")
# 123,456,789,000 or just 214
PRICE_PATTERN = re.compile(r"(\d{0,3},)*\d{1,3}")

DEFAULT_MARKUP = ProductMarkup()


def parse_html(html: str) -> BeautifulSoup:
    # Keep "class" as one raw string so lookups compare the attribute as written.
    return BeautifulSoup(html, "html.parser", multi_valued_attributes=None)


def find_node(root: BeautifulSoup | Tag, kind: str, css_class: str) -> Optional[Tag]:
    """
    Return the first element in document order whose tag name is `kind` and
    whose class attribute equals `css_class` exactly. No fallback to later matches.
    """
    for node in root.find_all(kind):
        if node.get("class") == css_class:
            return node
    return None


def extract_id(soup: BeautifulSoup, markup: ProductMarkup = DEFAULT_MARKUP) -> int:
    container = find_node(soup, markup.container_kind, markup.container_class)
    if container is None:
        return 0
    node = container.find(markup.id_kind)
    if node is None:
        return 0
    match = ID_PATTERN.search(node.get_text())
    if not match:
        return 0
    try:
        return int(match.group(0))
    except ValueError:
        return 0


def extract_name(soup: BeautifulSoup, markup: ProductMarkup = DEFAULT_MARKUP) -> str:
    node = find_node(soup, markup.name_kind, markup.name_class)
    if node is None:
        return ""
    # Verbatim: surrounding whitespace is part of the name as published.
    return node.get_text()


def extract_price(soup: BeautifulSoup, markup: ProductMarkup = DEFAULT_MARKUP) -> str:
    node = find_node(soup, markup.price_kind, markup.price_class)
    if node is None:
        return ""
    match = PRICE_PATTERN.search(node.get_text())
    return match.group(0) if match else ""


def extract_fields(html: str, markup: ProductMarkup = DEFAULT_MARKUP) -> ExtractionFields:
    soup = parse_html(html)
    return ExtractionFields(
        id=extract_id(soup, markup),
        name=extract_name(soup, markup),
        price=extract_price(soup, markup),
    )


def extract_product(
    html: str, markup: ProductMarkup = DEFAULT_MARKUP
) -> Tuple[Optional[Product], ExtractionFields]:
    """Derive a product from page markup; None unless all three fields resolved."""
    fields = extract_fields(html, markup)
    return fields.to_product(), fields
