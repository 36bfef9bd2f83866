from __future__ import annotations

import argparse
import logging
from typing import List

from ..config import ParserConfig
from ..utils.logging import setup_logging
from ..utils.loader import load_symbol
from ..adapters.registry import AdapterRegistry
from ..engines.controller import RunController
from ..export.base import Exporter

logger = logging.getLogger(__name__)

EXPORTER_ALIASES = {
    "csv": "product_parser.export.csv_exporter:CSVExporter",
    "json": "product_parser.export.json_exporter:JSONExporter",
    "console": "product_parser.export.console_exporter:ConsoleExporter",
}


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Extract product records from a list of page addresses")
    p.add_argument("input", nargs="?", default=None, help="Text file with one page address per line")
    p.add_argument("--config", type=str, help="Path to config JSON", default=None)
    p.add_argument("--output", type=str, default=None, help="Output file path")
    p.add_argument("--exporter", type=str, default=None,
                   help="csv, json, console, or a dotted path (module:ClassName)")
    p.add_argument("--batch-size", type=int, default=None, help="Links fetched concurrently per batch")
    p.add_argument("--batch-timeout", type=float, default=None, help="Seconds to wait for each batch")
    p.add_argument("--request-timeout", type=float, default=None, help="Per-page HTTP timeout in seconds")
    p.add_argument("--extra-adapters", type=str, default=None,
                   help="Comma-separated dotted paths for additional adapters")
    p.add_argument("--log-level", type=str, default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
    p.add_argument("--serve", action="store_true", help="Run REST API server instead of a CLI run")
    p.add_argument("--host", type=str, default="127.0.0.1", help="API host (when --serve)")
    p.add_argument("--port", type=int, default=8000, help="API port (when --serve)")
    return p


def _load_config(args: argparse.Namespace) -> ParserConfig:
    if args.config:
        cfg = ParserConfig.from_file(args.config)
    else:
        cfg = ParserConfig.from_env()

    if args.input:
        cfg.input_path = args.input
    if args.output:
        cfg.output_path = args.output
    if args.exporter:
        cfg.exporter = EXPORTER_ALIASES.get(args.exporter.lower(), args.exporter)
    if args.batch_size is not None:
        cfg.batch_size = args.batch_size
    if args.batch_timeout is not None:
        cfg.batch_timeout = args.batch_timeout
    if args.request_timeout is not None:
        cfg.request_timeout = args.request_timeout
    if args.extra_adapters:
        cfg.extra_adapters = [a.strip() for a in args.extra_adapters.split(",") if a.strip()]

    cfg.validate()
    return cfg


def build_registry(cfg: ParserConfig) -> AdapterRegistry:
    registry = AdapterRegistry()
    registry.discover_entry_points()
    # Allow runtime registration of additional adapters
    for dotted in cfg.extra_adapters:
        try:
            adapter_cls = load_symbol(dotted)
            registry.register(adapter_cls())
        except Exception as exc:
            logger.warning("Failed to load adapter %s: %r", dotted, exc)
    return registry


def run_server(host: str, port: int) -> None:
    try:
        import uvicorn  # type: ignore
    except ImportError as exc:  # pragma: no cover - optional dep
        raise SystemExit("To run the API, install dependencies: pip install 'product-parser[api]'") from exc
    uvicorn.run("product_parser.apis.app:app", host=host, port=port)


def run_cli(argv: List[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    if args.serve:
        run_server(args.host, args.port)
        return 0

    try:
        cfg = _load_config(args)
    except (OSError, ValueError, TypeError) as exc:
        parser.error(f"invalid configuration: {exc}")

    if not cfg.input_path:
        parser.error("an input file is required (positional argument or PARSER_INPUT_PATH)")

    # Dynamic exporter loading so sinks can be swapped without code edits.
    exporter: Exporter = load_symbol(cfg.exporter)()
    try:
        exporter.open(cfg.output_path)
    except OSError as exc:
        logger.error("Cannot open output %s: %r", cfg.output_path, exc)
        return 1

    controller = RunController(cfg, registry=build_registry(cfg))
    controller.add_listener(exporter)

    if not controller.start(cfg.input_path):
        return 2
    controller.wait()

    report = controller.last_report
    if report is not None and report.overrun:
        logger.info("Waiting for %d overrun operation(s) before exit", report.overrun)
    # Each fetch is bounded by request_timeout, so this cannot hang indefinitely.
    controller.join()

    logger.info("Links: %s | Products: %s | Output: %s",
                report.total_links if report else 0,
                controller.success_count,
                cfg.output_path)
    return 0
