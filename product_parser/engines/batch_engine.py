from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Iterator, List, Optional, Set

from aiohttp import ClientSession

from .base import ParseEngine, RunReport, SuccessCallback
from ..config import ParserConfig
from ..adapters.registry import AdapterRegistry
from ..utils.http import create_session, fetch_page

logger = logging.getLogger(__name__)

Fetcher = Callable[..., Awaitable[Optional[str]]]


def iter_batches(links: List[str], size: int) -> Iterator[List[str]]:
    """Yield consecutive slices of at most `size` links, front to back."""
    if size <= 0:
        raise ValueError("batch size must be > 0")
    remaining = list(links)
    while remaining:
        batch, remaining = remaining[:size], remaining[size:]
        yield batch


class BatchParseEngine(ParseEngine):
    """
    Fixed-width batch scheduler.
    - One task per link, all links of a batch in flight together.
    - Each batch gets a bounded wait; stragglers are left running, not cancelled.
    - Adapters own page extraction; the engine owns HTTP and reporting.

    Use as an async context manager: the HTTP session stays open on exit until
    every straggler has completed.
    """
    def __init__(
        self,
        config: ParserConfig,
        registry: AdapterRegistry | None = None,
        *,
        fetcher: Fetcher = fetch_page,
        session_factory: Callable[[], ClientSession] = create_session,
    ) -> None:
        self.config = config
        self.registry = registry or AdapterRegistry()
        self._fetcher = fetcher
        self._session_factory = session_factory
        self._session: Optional[ClientSession] = None
        self._pending: Set[asyncio.Task] = set()

    async def __aenter__(self) -> "BatchParseEngine":
        if self._session is None:
            self._session = self._session_factory()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            await self.drain()
        finally:
            if self._session is not None:
                await self._session.close()
                self._session = None

    @property
    def pending(self) -> int:
        return sum(1 for t in self._pending if not t.done())

    async def run(self, links: List[str], on_success: SuccessCallback) -> RunReport:
        if self._session is None:
            raise RuntimeError("engine session is not open; use 'async with engine:'")

        cfg = self.config
        report = RunReport(total_links=len(links))

        for number, batch in enumerate(iter_batches(links, cfg.batch_size), start=1):
            report.batches.append(len(batch))
            tasks = [
                asyncio.create_task(self._process(link, on_success), name=f"parse:{link}")
                for link in batch
            ]
            try:
                done, pending = await asyncio.wait(tasks, timeout=cfg.batch_timeout)
            except Exception as exc:
                logger.error("Unhandled %s while waiting for batch %d: %r", type(exc).__name__, number, exc)
                self._track(t for t in tasks if not t.done())
                continue

            for task in done:
                if not task.cancelled() and task.exception() is not None:
                    exc = task.exception()
                    logger.error("Unhandled %s in %s: %r", type(exc).__name__, task.get_name(), exc)

            if pending:
                report.timed_out_batches += 1
                logger.info(
                    "Batch %d wait timeout (%.1fs); %d of %d operation(s) still running",
                    number, cfg.batch_timeout, len(pending), len(batch),
                )
                self._track(pending)

        report.overrun = self.pending
        return report

    async def drain(self) -> None:
        """Wait for stragglers from timed-out batches to finish on their own."""
        pending = [t for t in self._pending if not t.done()]
        if not pending:
            return
        logger.info("Waiting for %d overrun operation(s) to complete", len(pending))
        await asyncio.wait(pending)

    def _track(self, tasks) -> None:
        for task in tasks:
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _process(self, link: str, on_success: SuccessCallback) -> None:
        try:
            html = await self._fetcher(
                self._session,
                link,
                timeout=self.config.request_timeout,
                user_agent=self.config.user_agent,
            )
            if html is None:
                return

            adapter = self.registry.match(link)
            # Parsing is CPU-bound; keep it off the loop so other fetches progress.
            product, fields = await asyncio.to_thread(adapter.extract, link, html)
            if product is None:
                logger.error(
                    "Failed to parse page %s: missing %s (id: %r, name: %r, price: %r)",
                    link, ", ".join(fields.missing()), fields.id, fields.name, fields.price,
                )
                return

            on_success(product)
        except Exception as exc:  # broad catch so one page never aborts its batch
            logger.error("Unhandled %s while parsing %s: %r", type(exc).__name__, link, exc)
