from __future__ import annotations

from typing import Protocol

from ..adapters.base import Product


class Exporter(Protocol):
    """
    A result sink. It is registered as a run listener, so products arrive
    one at a time from the engine thread; `open` is called before the run.
    """
    def open(self, path: str) -> None:
        ...

    def on_product_parsed(self, product: Product) -> None:
        ...

    def on_parsing_finished(self) -> None:
        ...
