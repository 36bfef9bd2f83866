from __future__ import annotations

import sys
import threading
from typing import IO, Optional

from ..adapters.base import Product
from ..engines.controller import ParsingListener


class ConsoleExporter(ParsingListener):
    """Prints each product as a CSV record; `open` accepts "-" or any path and ignores it."""

    def __init__(self, stream: Optional[IO[str]] = None) -> None:
        self._stream = stream
        self._lock = threading.Lock()

    def open(self, path: str) -> None:
        return None

    def on_product_parsed(self, product: Product) -> None:
        stream = self._stream or sys.stdout
        with self._lock:
            print(product.to_csv(), file=stream, flush=True)
