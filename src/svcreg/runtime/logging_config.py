"""Logging setup for hosts embedding svcreg.

Factory callbacks run on behalf of a container; while one runs, the
container name and the identifier being built are held in context vars so
that any log line the factory emits can be traced back to the lookup that
triggered it.
"""

from __future__ import annotations

import json
import logging
import logging.handlers
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path

from svcreg.config import RuntimeConfig, SvcRegConfig

ctx_container_id: ContextVar[str] = ContextVar("ctx_container_id", default="")
ctx_building: ContextVar[str] = ContextVar("ctx_building", default="")

LOG_FILE_NAME = "svcreg.log"
_CONTEXT_FIELDS = ("container_id", "building")


@contextmanager
def factory_context(container_id: str, building: str) -> Iterator[None]:
    """Attribute log records to a container and the identifier it is building."""
    ctr_token = ctx_container_id.set(container_id)
    bld_token = ctx_building.set(building)
    try:
        yield
    finally:
        ctx_building.reset(bld_token)
        ctx_container_id.reset(ctr_token)


class FactoryContextFilter(logging.Filter):
    """Copy the factory context vars onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.container_id = ctx_container_id.get()  # type: ignore[attr-defined]
        record.building = ctx_building.get()  # type: ignore[attr-defined]
        return True


def _context(record: logging.LogRecord) -> dict[str, str]:
    return {
        field: value
        for field in _CONTEXT_FIELDS
        if (value := getattr(record, field, ""))
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per line; used for the rotating log file."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            **_context(record),
        }
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class HumanFormatter(logging.Formatter):
    """Plain text, suffixed with ``[ctr=... building=...]`` inside factories."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        ctx = _context(record)
        if not ctx:
            return base
        parts = [f"ctr={ctx['container_id']}"] if "container_id" in ctx else []
        if "building" in ctx:
            parts.append(f"building={ctx['building']}")
        return f"{base} [{' '.join(parts)}]"


def configure_logging(
    runtime: RuntimeConfig | None = None,
    *,
    verbose: bool = False,
    backup_count: int = 5,
) -> None:
    """Install console (and optionally rotating file) handlers on the root logger.

    Existing root handlers are replaced. ``verbose`` forces DEBUG.
    """
    runtime = runtime or RuntimeConfig()
    root = logging.getLogger()
    root.handlers.clear()

    level = logging.DEBUG if verbose else getattr(logging, runtime.log_level)
    root.setLevel(level)
    ctx_filter = FactoryContextFilter()

    if runtime.log_json:
        console_fmt: logging.Formatter = JSONFormatter(datefmt="%Y-%m-%dT%H:%M:%S")
    else:
        console_fmt = HumanFormatter(
            fmt="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(console_fmt)
    console.addFilter(ctx_filter)
    root.addHandler(console)

    if runtime.log_dir:
        log_path = Path(runtime.log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path / LOG_FILE_NAME,
            maxBytes=runtime.max_log_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(JSONFormatter(datefmt="%Y-%m-%dT%H:%M:%S"))
        file_handler.addFilter(ctx_filter)
        root.addHandler(file_handler)

    for mod, mod_level in (runtime.module_levels or {}).items():
        logging.getLogger(mod).setLevel(getattr(logging, mod_level.upper(), level))


def configure_from_config(config: SvcRegConfig, *, verbose: bool = False) -> None:
    """Apply the ``[runtime]`` section of a loaded svcreg.toml."""
    configure_logging(config.runtime, verbose=verbose)
    logging.getLogger(__name__).debug(
        "logging.configured level=%s json=%s log_dir=%s",
        config.runtime.log_level,
        config.runtime.log_json,
        config.runtime.log_dir,
    )


def update_log_level(level: str) -> None:
    """Change the root level in place; unknown level names are ignored."""
    numeric = logging.getLevelName(level.upper())
    if isinstance(numeric, int):
        logging.getLogger().setLevel(numeric)
        logging.getLogger(__name__).info("logging.level_changed level=%s", level)
