from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Protocol
from abc import ABC, abstractmethod

from ..adapters.base import Product


@dataclass
class RunReport:
    total_links: int = 0
    batches: List[int] = field(default_factory=list)  # batch sizes, in processing order
    timed_out_batches: int = 0
    overrun: int = 0  # operations still in flight when the batch phase ended


class SuccessCallback(Protocol):
    def __call__(self, product: Product) -> None:  # pragma: no cover - interface
        ...


class ParseEngine(ABC):
    """
    Abstract engine interface. Implementations own fetching and scheduling;
    reporting goes through the success callback.
    Engines are async context managers so they can hold resources across a run.
    """
    async def __aenter__(self) -> "ParseEngine":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    @abstractmethod
    async def run(self, links: List[str], on_success: SuccessCallback) -> RunReport:  # pragma: no cover - interface
        ...
