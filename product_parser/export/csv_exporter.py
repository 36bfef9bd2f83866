from __future__ import annotations

import csv
import logging
import threading
from pathlib import Path
from typing import IO, Optional

from ..adapters.base import Product
from ..engines.controller import ParsingListener

logger = logging.getLogger(__name__)


class CSVExporter(ParsingListener):
    """
    Appends one `Id,Name,"Price"` row per product as it is parsed.
    A header is written only when the destination does not exist yet.
    """

    _headers = ["Id", "Name", "Price"]
    line_terminator = "\r\n"  # csv module default

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._file: Optional[IO[str]] = None
        self.path: Optional[str] = None
        self.written = 0

    def open(self, path: str) -> None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        header_needed = not target.exists()
        with self._lock:
            if self._file is not None:
                logger.warning("Output file %s was not closed, closing...", self.path)
                self._file.close()
            self._file = open(target, "a", encoding="utf-8", newline="")
            self.path = str(target)
            self.written = 0
            if header_needed:
                csv.writer(self._file, lineterminator=self.line_terminator).writerow(self._headers)

    def on_product_parsed(self, product: Product) -> None:
        with self._lock:
            if self._file is None:
                logger.warning("Output file is not open; dropping product %s", product.id)
                return
            # Written by hand: csv.writer would quote names containing commas.
            self._file.write(product.to_csv() + self.line_terminator)
            self._file.flush()
            self.written += 1

    def on_parsing_finished(self) -> None:
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None
                logger.info("Wrote %d product(s) to %s", self.written, self.path)
