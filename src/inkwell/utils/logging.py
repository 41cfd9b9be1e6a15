"""Logging setup for the command-line runner.

Records go to a rotating ``inkwell.log`` and, optionally, to stderr so that
assistant text streamed on stdout stays clean. The agent loop, the tool
executor and the model client can each run at their own level, which is how
a single noisy component gets traced without drowning the rest.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

__all__ = ["COMPONENT_LOGGERS", "LoggingConfig", "parse_level", "setup_logging", "get_log_path"]

LOGGER = logging.getLogger(__name__)

COMPONENT_LOGGERS: Mapping[str, str] = {
    "loop": "inkwell.ai.orchestration",
    "tools": "inkwell.ai.tools",
    "client": "inkwell.ai.client",
    "documents": "inkwell.documents",
    "editor": "inkwell.editor",
}

_DEFAULT_LOG_DIR = Path.home() / ".inkwell" / "logs"
_LOG_FILENAME = "inkwell.log"
_THIRD_PARTY_LOGGERS: tuple[str, ...] = ("asyncio", "httpx", "httpcore", "openai")
_LOG_PATH: Path | None = None


@dataclass(slots=True, frozen=True)
class LoggingConfig:
    """Where records go and how verbose each component is.

    Attributes:
        level: Root level applied to every ``inkwell`` logger without its own.
        log_dir: Directory for the rotating file; ``INKWELL_LOG_DIR`` or
            ``~/.inkwell/logs`` when unset.
        console: Mirror records to stderr.
        component_levels: Per-component levels keyed by a
            :data:`COMPONENT_LOGGERS` alias or a full logger name.
    """

    level: int = logging.INFO
    log_dir: Path | None = None
    console: bool = True
    component_levels: Mapping[str, str | int] = field(default_factory=dict)
    max_bytes: int = 1_000_000
    backup_count: int = 3


def parse_level(value: str | int) -> int:
    """Resolve ``"debug"``, ``"WARNING"`` or a numeric level to an int."""

    if isinstance(value, bool):
        raise ValueError(f"Unknown log level {value!r}")
    if isinstance(value, int):
        return value
    resolved = logging.getLevelName(str(value).strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level {value!r}")
    return resolved


def setup_logging(config: LoggingConfig | None = None, *, force: bool = False) -> Path:
    """Install the root handlers and component levels; returns the log file path.

    A second call is a no-op unless ``force`` is set.
    """

    global _LOG_PATH
    if _LOG_PATH is not None and not force:
        return _LOG_PATH

    config = config or LoggingConfig()
    target_dir = _resolve_log_dir(config.log_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    log_path = target_dir / _LOG_FILENAME

    formatter = logging.Formatter(
        fmt="%(asctime)s %(levelname)-7s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )
    # Handlers pass everything through; loggers decide what is emitted.
    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(
            log_path, maxBytes=config.max_bytes, backupCount=config.backup_count, encoding="utf-8"
        )
    ]
    if config.console:
        handlers.append(logging.StreamHandler(sys.stderr))
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=config.level, handlers=handlers, force=True)
    logging.captureWarnings(True)
    _quiet_third_party(config.level)
    rejected = _apply_component_levels(config.component_levels)

    _LOG_PATH = log_path
    for name, value in rejected:
        LOGGER.warning("Ignoring unknown log level %r for %s", value, name)
    LOGGER.debug("Logging to %s (root=%s)", log_path, logging.getLevelName(config.level))
    return log_path


def get_log_path() -> Path | None:
    return _LOG_PATH


def _resolve_log_dir(log_dir: Path | None) -> Path:
    return Path(log_dir or os.environ.get("INKWELL_LOG_DIR") or _DEFAULT_LOG_DIR).expanduser()


def _quiet_third_party(root_level: int) -> None:
    quiet_level = max(root_level, logging.WARNING)
    for name in _THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)


def _apply_component_levels(levels: Mapping[str, str | int]) -> list[tuple[str, str | int]]:
    rejected: list[tuple[str, str | int]] = []
    for key, value in levels.items():
        name = COMPONENT_LOGGERS.get(key, key)
        try:
            logging.getLogger(name).setLevel(parse_level(value))
        except ValueError:
            rejected.append((name, value))
    return rejected
