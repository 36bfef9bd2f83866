from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import List, Optional

from ..adapters.base import Product
from ..engines.controller import ParsingListener


class JSONExporter(ParsingListener):
    """Collects products during the run and writes them as one JSON array at the end."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._products: List[Product] = []
        self.path: Optional[str] = None

    def open(self, path: str) -> None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            self.path = path
            self._products = []

    def on_product_parsed(self, product: Product) -> None:
        with self._lock:
            self._products.append(product)

    def on_parsing_finished(self) -> None:
        with self._lock:
            if self.path is None:
                return
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump([p.to_dict() for p in self._products], f, indent=2, ensure_ascii=False)
