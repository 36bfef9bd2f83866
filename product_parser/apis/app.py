from __future__ import annotations

from typing import Any, Dict, List
import logging
import threading

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel

from ..config import ParserConfig
from ..version import __version__
from ..adapters.base import Product
from ..engines.controller import ParsingListener, RunController
from ..sources import IterableLinkSource

logger = logging.getLogger(__name__)

app = FastAPI(title="product_parser API", version=__version__)


class RunRequest(BaseModel):
    links: List[str]


class ProductCollector(ParsingListener):
    """Keeps the products of the latest run for the status endpoint."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._products: List[Product] = []

    def reset(self) -> None:
        with self._lock:
            self._products = []

    def on_product_parsed(self, product: Product) -> None:
        with self._lock:
            self._products.append(product)

    @property
    def products(self) -> List[Product]:
        with self._lock:
            return list(self._products)


_controller: RunController | None = None
_collector = ProductCollector()


def get_controller() -> RunController:
    global _controller
    if _controller is None:
        cfg = ParserConfig.from_env()
        cfg.validate()
        _controller = RunController(cfg)
        _controller.add_listener(_collector)
    return _controller


def get_collector() -> ProductCollector:
    return _collector


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.post("/runs", status_code=202)
async def start_run(
    req: RunRequest,
    controller: RunController = Depends(get_controller),
    collector: ProductCollector = Depends(get_collector),
) -> Dict[str, Any]:
    if controller.is_running:
        raise HTTPException(status_code=409, detail="a parsing run is already in progress")
    collector.reset()
    if not controller.start(IterableLinkSource(req.links)):
        raise HTTPException(status_code=409, detail="a parsing run is already in progress")
    logger.info("Run started via API with %d link(s)", len(req.links))
    return {"started": True, "links": len(req.links)}


@app.get("/runs/current")
async def current_run(
    controller: RunController = Depends(get_controller),
    collector: ProductCollector = Depends(get_collector),
) -> Dict[str, Any]:
    return {
        "running": controller.is_running,
        "success_count": controller.success_count,
        "products": [p.to_dict() for p in collector.products],
    }
