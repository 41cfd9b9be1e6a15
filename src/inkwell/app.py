"""Command-line bootstrap for running one agent turn against a document."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, TextIO, get_args, get_origin, get_type_hints

from .ai.client import AIClient
from .ai.orchestration import AgentLoop, LoopHooks, LoopOutcome
from .ai.transport import ModelTransport
from .documents import InMemoryDocumentStore, Stage
from .documents.store import DocumentStore
from .services.settings import Settings, SettingsStore, check_setting_value, redact_secret
from .utils import logging as logging_utils

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}
_LOGGER = logging.getLogger(__name__)


def configure_logging(settings: Settings | None = None, *, debug: bool = False, force: bool = False) -> Path:
    """Configure logging from ``settings``; ``debug`` forces the root level to DEBUG."""

    config = (settings or Settings()).logging_config(debug=debug)
    return logging_utils.setup_logging(config, force=force)


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        return active_store.load(overrides=overrides)
    except (OSError, ValueError) as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        return Settings()


def build_agent_loop(
    settings: Settings,
    store: DocumentStore,
    *,
    hooks: LoopHooks | None = None,
    transport: ModelTransport | None = None,
) -> AgentLoop:
    """Wire an :class:`AgentLoop` to ``store`` using ``settings``.

    ``transport`` defaults to an :class:`AIClient` built from the settings.
    """

    active_transport = transport or AIClient(settings.client_settings())
    return AgentLoop(active_transport, store, config=settings.loop_config(), hooks=hooks)


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point invoked by the ``inkwell`` console script."""

    parser = _build_parser()
    args = parser.parse_args(argv)

    settings_path = args.settings_path or os.environ.get("INKWELL_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    settings_store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        return 2

    settings = load_settings(resolved_path, store=settings_store, overrides=cli_overrides or None)
    configure_logging(settings, debug=_env_flag("INKWELL_DEBUG", default=False))

    if args.dump_settings:
        _dump_settings(settings, settings_store, overrides=cli_overrides)
        return 0

    if not args.message:
        parser.error("a message is required unless --dump-settings is given")

    content = ""
    filename = None
    if args.document:
        document_path = Path(args.document).expanduser()
        content = document_path.read_text(encoding="utf-8")
        filename = document_path.name
    store = InMemoryDocumentStore(content, stage=args.stage, filename=filename)

    outcome = asyncio.run(run_once(settings, store, args.message))
    if args.show_document:
        sys.stdout.write("\n" + store.get_content() + "\n")
    return 0 if outcome.ok else 1


async def run_once(
    settings: Settings,
    store: DocumentStore,
    message: str,
    *,
    stream: TextIO | None = None,
    transport: ModelTransport | None = None,
) -> LoopOutcome:
    """Send ``message`` once, echoing streamed text to ``stream``.

    A client created here is closed afterwards; a supplied ``transport`` is
    left open for the caller.
    """

    destination = stream or sys.stdout
    hooks = LoopHooks(
        on_chunk=lambda text, done: _echo(destination, text, done),
        on_error=lambda text, credential: _report_error(destination, text, credential),
        on_tool_use=lambda tool_use: _LOGGER.info("Model called tool %s", tool_use.name),
    )
    client = AIClient(settings.client_settings()) if transport is None else None
    loop = build_agent_loop(settings, store, hooks=hooks, transport=transport or client)
    try:
        return await loop.send_message(message)
    finally:
        if client is not None:
            await client.aclose()


def _echo(stream: TextIO, text: str, done: bool) -> None:
    stream.write(text)
    if done:
        stream.write("\n")
    stream.flush()


def _report_error(stream: TextIO, message: str, is_credential: bool) -> None:
    prefix = "Check your API key: " if is_credential else "Error: "
    stream.write(f"\n{prefix}{message}\n")


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="inkwell",
        description="Run one writing-assistant turn against a document, or inspect the configuration.",
    )
    parser.add_argument("message", nargs="?", help="Message to send to the assistant.")
    parser.add_argument("--document", metavar="PATH", help="Markdown file loaded as the working document.")
    parser.add_argument(
        "--stage",
        default=Stage.DRAFT.value,
        choices=[stage.value for stage in Stage.ordered()],
        help="Writing stage of the document (default: draft).",
    )
    parser.add_argument(
        "--show-document",
        action="store_true",
        help="Print the document content after the turn finishes.",
    )
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings payload (with secrets redacted) and exit.",
    )
    parser.add_argument(
        "--settings-path",
        metavar="PATH",
        help="Override the default ~/.inkwell/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings for this run (repeatable).",
    )
    return parser


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if not items:
        return overrides

    fields = Settings.__dataclass_fields__  # type: ignore[attr-defined]
    type_hints = get_type_hints(Settings)
    for entry in items:
        if "=" not in entry:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        key, raw_value = entry.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError("Override is missing a field name.")
        if key not in fields:
            raise ValueError(f"Unknown setting '{key}'.")
        value = _coerce_value(type_hints.get(key, fields[key].type), raw_value.strip())
        check_setting_value(key, value)
        overrides[key] = value
    return overrides


def _coerce_value(annotation: Any, raw_value: str) -> Any:
    optional = type(None) in get_args(annotation)
    target = _resolve_annotation(annotation)
    normalized = raw_value.strip()

    if optional and normalized.lower() in {"none", "null"}:
        return None
    if target is str or target is Any:
        return normalized
    if target is bool:
        return _parse_bool(normalized)
    if target is int:
        return int(normalized, 10)
    if target is float:
        return float(normalized)
    if target is dict:
        try:
            payload = json.loads(normalized or "{}")
        except json.JSONDecodeError as exc:
            raise ValueError("Dict overrides must be valid JSON objects") from exc
        if not isinstance(payload, dict):
            raise ValueError("Dict overrides must be valid JSON objects")
        return payload
    return normalized


def _resolve_annotation(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is None:
        return annotation
    if origin is dict:
        return origin
    args = [arg for arg in get_args(annotation) if arg is not type(None)]
    if not args:
        return origin
    return args[0]


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    payload = asdict(settings)
    payload["api_key"] = redact_secret(settings.api_key)
    log_path = logging_utils.get_log_path()
    metadata = {
        "path": str(store.path),
        "log_path": str(log_path) if log_path else None,
        "secret_backend": store.vault.name,
        "cli_overrides": sorted(overrides.keys()),
        "environment_variables": sorted(name for name in os.environ if name.startswith("INKWELL_")),
    }
    json.dump({"settings": payload, "meta": metadata}, destination, indent=2)
    destination.write("\n")


__all__ = ["build_agent_loop", "configure_logging", "load_settings", "main", "run_once"]
