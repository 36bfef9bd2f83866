from __future__ import annotations

import asyncio
import logging
import threading
from typing import Callable, List, Optional

from .base import ParseEngine, RunReport
from .batch_engine import BatchParseEngine
from ..config import ParserConfig
from ..adapters.base import Product
from ..adapters.registry import AdapterRegistry
from ..sources import as_link_source

logger = logging.getLogger(__name__)


class ParsingListener:
    """Observer for run events. Both hooks are no-ops; override what you need."""

    def on_product_parsed(self, product: Product) -> None:
        pass

    def on_parsing_finished(self) -> None:
        pass


class _Run:
    def __init__(self) -> None:
        self.closed = False
        self.done = threading.Event()


class RunController:
    """
    Owns the parse lifecycle: one run at a time, a success counter, and
    fan-out of product/finished events to registered listeners.

    `start` returns immediately; the batch phase runs on a background thread
    with its own event loop. Listeners are called from that thread.
    """

    def __init__(
        self,
        config: ParserConfig | None = None,
        registry: AdapterRegistry | None = None,
        engine_factory: Callable[[], ParseEngine] | None = None,
    ) -> None:
        self.config = config or ParserConfig()
        self.registry = registry or AdapterRegistry()
        self._engine_factory = engine_factory or self._default_engine
        # Guards the counter and event delivery; reentrant so listeners may read state.
        self._lock = threading.RLock()
        # Guards the active flag in start/finish only.
        self._guard = threading.Lock()
        self._listeners: List[ParsingListener] = [ParsingListener()]
        self._active = False
        self._count = 0
        self._run: Optional[_Run] = None
        self._thread: Optional[threading.Thread] = None
        self.last_report: Optional[RunReport] = None

    # ---- Listeners ----

    def add_listener(self, listener: ParsingListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: ParsingListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    # ---- State ----

    @property
    def is_running(self) -> bool:
        return self._active

    @property
    def success_count(self) -> int:
        with self._lock:
            return self._count

    # ---- Lifecycle ----

    def start(self, source=None) -> bool:
        """
        Begin a run over `source` (a LinkSource, a path, or an iterable of links;
        defaults to config.input_path). Returns False if a run is already active.
        """
        with self._guard:
            if self._active:
                logger.warning("Attempt to start new parsing session while processing previous one.")
                return False
            self._active = True
            run = self._run = _Run()

        with self._lock:
            self._count = 0
        self.last_report = None

        try:
            links = self._load_links(source)
        except Exception as exc:
            # An unusable source means no links; the run still has to finish.
            logger.error("Failed to read links from %r: %r", source, exc)
            links = None
        if not links:
            self._finish(run, None)
            return True

        logger.info("%d tasks will be launched", len(links))
        self._thread = threading.Thread(
            target=self._run_in_thread, args=(run, links), name="product-parser-run", daemon=True
        )
        self._thread.start()
        return True

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the current run has signalled finished. True if it has."""
        run = self._run
        if run is None:
            return True
        return run.done.wait(timeout)

    def join(self, timeout: float | None = None) -> None:
        """Also wait for overrun operations and the background thread to exit."""
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def record_success(self, product: Product, run: Optional[_Run] = None) -> None:
        with self._lock:
            run = run or self._run
            if run is None or run.closed:
                logger.debug("Dropping late result from a finished run: %s", product)
                return
            self._count += 1
            for listener in list(self._listeners):
                try:
                    listener.on_product_parsed(product)
                except Exception as exc:
                    logger.error("Listener %r failed on product %s: %r", listener, product.id, exc)

    # ---- Internals ----

    def _default_engine(self) -> ParseEngine:
        return BatchParseEngine(self.config, registry=self.registry)

    def _load_links(self, source) -> Optional[List[str]]:
        if source is None:
            source = self.config.input_path
        link_source = as_link_source(source)
        if link_source is None:
            logger.error("No link source given and no input_path configured")
            return None
        return link_source.read_links()

    def _run_in_thread(self, run: _Run, links: List[str]) -> None:
        try:
            asyncio.run(self._drive(run, links))
        except Exception as exc:
            logger.error("Unhandled %s in batch phase: %r", type(exc).__name__, exc)
        finally:
            # No-op when the run already finished normally.
            self._finish(run, None)

    async def _drive(self, run: _Run, links: List[str]) -> None:
        engine = self._engine_factory()
        async with engine:
            report: Optional[RunReport] = None
            try:
                report = await engine.run(links, lambda product: self.record_success(product, run))
            finally:
                # Signal before draining stragglers; their results are dropped.
                self._finish(run, report)

    def _finish(self, run: _Run, report: Optional[RunReport]) -> None:
        with self._lock:
            if run.closed:
                return
            run.closed = True
            count = self._count
            listeners = list(self._listeners)

        if report is not None:
            self.last_report = report
        logger.info("%d %s finished successfully", count, "task" if count == 1 else "tasks")

        with self._guard:
            self._active = False

        for listener in listeners:
            try:
                listener.on_parsing_finished()
            except Exception as exc:
                logger.error("Listener %r failed on finish: %r", listener, exc)
        run.done.set()
