"""Tests for adapter selection."""

from types import SimpleNamespace
from typing import List

import pytest

from product_parser.adapters import registry as registry_module
from product_parser.adapters.base import Product, ProductMarkup
from product_parser.adapters.generic import MarkupAdapter
from product_parser.adapters.registry import AdapterRegistry


class _ShopAdapter(MarkupAdapter):
    name = "shop"
    domains = ["shop.example", "www.shop.example"]

    def __init__(self) -> None:
        super().__init__(ProductMarkup(name_kind="h2", name_class="title"))


def test_generic_adapter_is_the_fallback() -> None:
    registry = AdapterRegistry()

    assert registry.match("http://anywhere.example/p/1").name == "generic"


def test_specific_adapter_wins_for_its_domain() -> None:
    registry = AdapterRegistry()
    registry.register(_ShopAdapter())

    assert registry.match("http://WWW.shop.example/item").name == "shop"
    assert registry.match("http://other.example/item").name == "generic"


def test_adapter_uses_its_markup() -> None:
    html = (
        '<div class="shouhinmei"><span>9</span></div>'
        '<h2 class="title">Flash</h2><span class="price">800</span>'
    )

    product, _ = _ShopAdapter().extract("http://shop.example/9", html)

    assert product == Product(id=9, name="Flash", price="800")


class _FakeEntryPoints:
    def __init__(self, eps: List[SimpleNamespace]) -> None:
        self._eps = eps

    def select(self, group: str) -> List[SimpleNamespace]:
        return [ep for ep in self._eps if ep.group == group]


def test_discover_entry_points(monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:
    def _broken():
        raise ImportError("missing dependency")

    eps = _FakeEntryPoints(
        [
            SimpleNamespace(name="shop", group="product_parser.adapters", load=lambda: _ShopAdapter),
            SimpleNamespace(name="broken", group="product_parser.adapters", load=_broken),
            SimpleNamespace(name="other", group="something.else", load=lambda: _ShopAdapter),
        ]
    )
    monkeypatch.setattr(registry_module.metadata, "entry_points", lambda: eps)
    registry = AdapterRegistry()

    added = registry.discover_entry_points()

    assert added == 1
    assert [a.name for a in registry.adapters] == ["generic", "shop"]
    assert "Failed to load adapter entry point broken" in caplog.text
