from __future__ import annotations

import logging
import os
from typing import Iterable, List, Optional, Protocol

logger = logging.getLogger(__name__)


class LinkSource(Protocol):
    def read_links(self) -> Optional[List[str]]:
        """Return the ordered links, or None when the source is unavailable."""
        ...


class FileLinkSource:
    """One address per line. Lines are taken as-is apart from the line ending."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = path

    def read_links(self) -> Optional[List[str]]:
        if not os.path.isfile(self.path):
            logger.error('Input file "%s" does not exist.', self.path)
            return None
        try:
            with open(self.path, "r", encoding="utf-8-sig") as f:
                return f.read().splitlines()
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("Failed to read input file %s: %r", self.path, exc)
            return None


class IterableLinkSource:
    def __init__(self, links: Iterable[str]) -> None:
        self._links = list(links)

    def read_links(self) -> Optional[List[str]]:
        return list(self._links)


def as_link_source(source) -> Optional[LinkSource]:
    """Accept a LinkSource, a path, or an iterable of links."""
    if source is None:
        return None
    if hasattr(source, "read_links"):
        return source
    if isinstance(source, (str, os.PathLike)):
        return FileLinkSource(source)
    return IterableLinkSource(source)
