"""Structured logging and debug artifacts for agent runs.

Log output goes to stderr, rendered for humans on a terminal and as JSON
lines otherwise. Context bound with :func:`bound_run_context` (a run id, a
documentation URL) is merged into every event logged inside the block.

With ``DEBUG`` set, transcripts and generated configs are also written under
``DEBUG_DIR`` (default ``./debug``), one folder per run.
"""

import json
import os
import sys
from contextlib import contextmanager
from dataclasses import asdict, is_dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator

import structlog

LEVELS = {
    "DEBUG": 10,
    "INFO": 20,
    "WARNING": 30,
    "ERROR": 40,
}


def _flag(name: str) -> bool:
    return os.getenv(name, "false").lower() in ("true", "1", "yes")


def debug_enabled() -> bool:
    """Whether debug artifacts are written; read from ``DEBUG`` on each call."""
    return _flag("DEBUG")


def log_level() -> int:
    default = "DEBUG" if debug_enabled() else "INFO"
    return LEVELS.get(os.getenv("LOG_LEVEL", default).upper(), LEVELS["INFO"])


def artifact_dir(run_id: str | None = None, phase: str | None = None) -> Path:
    """Folder for a run's artifacts: ``DEBUG_DIR[/run_id][/phase]``, created on demand."""
    path = Path(os.getenv("DEBUG_DIR", Path.cwd() / "debug"))
    for part in (run_id, phase):
        if part:
            path = path / part
    path.mkdir(parents=True, exist_ok=True)
    return path


def _jsonable(data: Any) -> Any:
    if hasattr(data, "model_dump"):
        return data.model_dump(mode="json", by_alias=True)
    if is_dataclass(data) and not isinstance(data, type):
        return asdict(data)
    if isinstance(data, (list, tuple)):
        return [_jsonable(item) for item in data]
    if isinstance(data, dict):
        return {key: _jsonable(value) for key, value in data.items()}
    return data


def save_debug_artifact(
    name: str,
    data: Any,
    run_id: str | None = None,
    phase: str | None = None,
) -> Path | None:
    """Write ``data`` as JSON when debug mode is on.

    Pydantic models, dataclasses and containers of them are converted first;
    anything else falls back to ``str``.

    Returns:
        Path of the written file, or None if debug mode is off or the write
        failed.
    """
    if not debug_enabled():
        return None

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    try:
        filepath = artifact_dir(run_id, phase) / f"{timestamp}_{name}.json"
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(_jsonable(data), f, indent=2, default=str)
    except (OSError, TypeError, ValueError) as e:
        get_logger(__name__).warning("debug_artifact_failed", name=name, error=str(e))
        return None
    return filepath


@contextmanager
def bound_run_context(**context: Any) -> Iterator[None]:
    """Attach ``context`` to every event logged inside the block."""
    with structlog.contextvars.bound_contextvars(**context):
        yield


def configure_logging(level: int | None = None, json_output: bool | None = None) -> None:
    """Configure structlog for the process.

    Args:
        level: Minimum level; from ``LOG_LEVEL``/``DEBUG`` when omitted.
        json_output: Force JSON lines; defaults to JSON unless stderr is a TTY.
    """
    if json_output is None:
        json_output = not sys.stderr.isatty()
    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level() if level is None else level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """Logger for ``name`` with ``initial_context`` bound."""
    logger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger


configure_logging()
