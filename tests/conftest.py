"""Shared fixtures: product page markup and an in-memory fetcher."""

from __future__ import annotations

import asyncio
from typing import Callable, Dict, List, Optional

import pytest


def _product_html(id_text: Optional[str] = "SKU 4471",
                  name: Optional[str] = "Widget",
                  price: Optional[str] = "1,234") -> str:
    parts = ["<html><body>"]
    if id_text is not None:
        parts.append(f'<div class="shouhinmei"><span>{id_text}</span></div>')
    if name is not None:
        parts.append(f'<h1 class="shouhin_name">{name}</h1>')
    if price is not None:
        parts.append(f'<p>Price: <span class="price">{price}</span></p>')
    parts.append("</body></html>")
    return "".join(parts)


class DummySession:
    def __init__(self) -> None:
        self.closed = False

    async def close(self) -> None:
        self.closed = True


class FakeFetcher:
    """Serves canned HTML by URL; optional per-URL delay or error."""

    def __init__(self, pages: Dict[str, Optional[str]],
                 delays: Optional[Dict[str, float]] = None,
                 errors: Optional[Dict[str, Exception]] = None) -> None:
        self.pages = pages
        self.delays = delays or {}
        self.errors = errors or {}
        self.calls: List[str] = []

    async def __call__(self, session, url: str, *, timeout: float, user_agent=None) -> Optional[str]:
        self.calls.append(url)
        delay = self.delays.get(url)
        if delay:
            await asyncio.sleep(delay)
        if url in self.errors:
            raise self.errors[url]
        return self.pages.get(url)


@pytest.fixture
def product_html() -> Callable[..., str]:
    return _product_html


@pytest.fixture
def dummy_session_factory() -> Callable[[], DummySession]:
    return DummySession


@pytest.fixture
def fake_fetcher() -> Callable[..., FakeFetcher]:
    return FakeFetcher
