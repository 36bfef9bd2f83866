from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import List, Dict, Any, Optional
from pathlib import Path
import os
import json

from .version import __version__, CONFIG_SCHEMA_VERSION


@dataclass
class ParserConfig:
    """
    Canonical configuration object passed throughout the system.
    Keep it dataclass-only (no heavy deps) so the engine can be built anywhere.
    """
    schema_version: int = CONFIG_SCHEMA_VERSION
    # Text file with one page address per line.
    input_path: Optional[str] = None
    batch_size: int = 10
    batch_timeout: float = 20.0
    request_timeout: float = 15.0
    user_agent: str = f"product_parser/{__version__}"
    # Dotted path for the result sink so it can be swapped without code changes.
    exporter: str = "product_parser.export.csv_exporter:CSVExporter"
    # Extra adapters (dotted class paths) to register at startup
    extra_adapters: List[str] = field(default_factory=list)
    output_path: str = "output/products.csv"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    # ---------- Loaders ----------

    @classmethod
    def from_env(cls) -> "ParserConfig":
        """
        Build config from environment variables (all optional).
        """
        def _get(name: str, default: str) -> str:
            return os.getenv(name, default)

        return cls(
            input_path=os.getenv("PARSER_INPUT_PATH") or None,
            batch_size=int(_get("PARSER_BATCH_SIZE", "10")),
            batch_timeout=float(_get("PARSER_BATCH_TIMEOUT", "20.0")),
            request_timeout=float(_get("PARSER_REQUEST_TIMEOUT", "15.0")),
            user_agent=_get("PARSER_USER_AGENT", f"product_parser/{__version__}"),
            exporter=_get("PARSER_EXPORTER", "product_parser.export.csv_exporter:CSVExporter"),
            extra_adapters=[a.strip() for a in _get("PARSER_EXTRA_ADAPTERS", "").split(",") if a.strip()],
            output_path=_get("PARSER_OUTPUT_PATH", "output/products.csv"),
        )

    @classmethod
    def from_file(cls, path: str | os.PathLike[str]) -> "ParserConfig":
        """
        Load configuration from a JSON file. Older schema versions are migrated first.
        """
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        data = migrate_config(data)
        return cls(**data)

    # ---------- Validation ----------

    def validate(self) -> None:
        if self.batch_size <= 0:
            raise ValueError("batch_size must be > 0")
        if self.batch_timeout <= 0:
            raise ValueError("batch_timeout must be > 0")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be > 0")
        if not self.output_path or not self.output_path.strip():
            raise ValueError("output_path cannot be empty")
        # Validate output path parent exists or is creatable
        parent = Path(self.output_path).parent
        parent.mkdir(parents=True, exist_ok=True)


def migrate_config(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Migrate config dict to the latest schema version.
    Keep this pure and additive. Add migrations here as you bump schema.
    """
    raw = dict(raw)
    schema = raw.get("schema_version", 1)

    if schema < 2:
        # Schema 1 called the batch width "max_tasks" and the wait budget "tasks_timeout".
        if "max_tasks" in raw:
            raw["batch_size"] = raw.pop("max_tasks")
        if "tasks_timeout" in raw:
            raw["batch_timeout"] = raw.pop("tasks_timeout")
        raw["schema_version"] = 2

    raw.setdefault("schema_version", CONFIG_SCHEMA_VERSION)
    return raw
