"""Tests for the command-line bootstrap and logging setup."""

from __future__ import annotations

import io
import json
import logging
from pathlib import Path

import pytest

from inkwell import app
from inkwell.ai.orchestration import LoopState
from inkwell.ai.transport import ChunkEvent, ErrorEvent, StopEvent, ToolUseEvent
from inkwell.documents import InMemoryDocumentStore
from inkwell.services.settings import Settings
from inkwell.utils import logging as logging_utils
from tests.helpers import ScriptedTransport


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    component_levels = {name: logging.getLogger(name).level for name in logging_utils.COMPONENT_LOGGERS.values()}
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    for name, previous in component_levels.items():
        logging.getLogger(name).setLevel(previous)


def test_coerce_cli_overrides_uses_field_types() -> None:
    overrides = app._coerce_cli_overrides(
        [
            "max_tool_iterations=4",
            "debug_logging=yes",
            "temperature=0.2",
            "organization=none",
            "max_tokens=256",
            'default_headers={"X-Test": "1"}',
            "model= gpt-4.1 ",
        ]
    )

    assert overrides == {
        "max_tool_iterations": 4,
        "debug_logging": True,
        "temperature": 0.2,
        "organization": None,
        "max_tokens": 256,
        "default_headers": {"X-Test": "1"},
        "model": "gpt-4.1",
    }


@pytest.mark.parametrize(
    "entry",
    ["model", "=x", "bogus=1", "debug_logging=maybe", "max_retries=lots", "max_tool_iterations=0", "max_retries=-1"],
)
def test_coerce_cli_overrides_rejects_bad_entries(entry: str) -> None:
    with pytest.raises(ValueError):
        app._coerce_cli_overrides([entry])


def test_dump_settings_redacts_the_api_key(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr(app, "configure_logging", lambda *args, **kwargs: None)
    monkeypatch.delenv("INKWELL_API_KEY", raising=False)
    monkeypatch.delenv("INKWELL_MODEL", raising=False)
    settings_path = tmp_path / "settings.json"

    exit_code = app.main(
        ["--dump-settings", "--settings-path", str(settings_path), "--set", "api_key=sk-secret-value", "--set", "model=m"]
    )

    output = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert output["settings"]["api_key"] == "sk***********ue"
    assert output["settings"]["model"] == "m"
    assert output["meta"]["cli_overrides"] == ["api_key", "model"]
    assert output["meta"]["secret_backend"] == "fernet"
    assert output["meta"]["path"] == str(settings_path)


def test_invalid_override_exits_with_usage_error(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(app, "configure_logging", lambda *args, **kwargs: None)

    assert app.main(["--settings-path", str(tmp_path / "s.json"), "--set", "nope", "hi"]) == 2


@pytest.mark.asyncio
async def test_run_once_streams_text_and_runs_tools() -> None:
    store = InMemoryDocumentStore("Draft", filename="notes.md")
    transport = ScriptedTransport(
        [
            [ToolUseEvent("t1", "update_document", {"operation": "append", "content": " more"}), StopEvent("tool_use")],
            [ChunkEvent("Added "), ChunkEvent("text."), ChunkEvent("", done=True), StopEvent("end_turn")],
        ]
    )
    output = io.StringIO()

    outcome = await app.run_once(Settings(), store, "Extend it", stream=output, transport=transport)

    assert outcome.status is LoopState.IDLE
    assert output.getvalue() == "Added text.\n"
    assert store.get_content() == "Draft more"


@pytest.mark.asyncio
async def test_run_once_reports_credential_errors() -> None:
    transport = ScriptedTransport([[ErrorEvent("Invalid API key", status_code=401)]])
    output = io.StringIO()

    outcome = await app.run_once(Settings(), InMemoryDocumentStore(), "Hi", stream=output, transport=transport)

    assert outcome.ok is False
    assert outcome.is_credential_error
    assert "Check your API key: Invalid API key" in output.getvalue()


def test_build_agent_loop_applies_settings(store: InMemoryDocumentStore) -> None:
    loop = app.build_agent_loop(
        Settings(max_tool_iterations=3, preview_char_limit=50),
        store,
        transport=ScriptedTransport([[StopEvent("end_turn")]]),
    )

    assert loop.config.max_iterations == 3
    assert loop.config.preview_char_limit == 50
    assert loop.state is LoopState.IDLE


def test_setup_logging_writes_to_log_dir(tmp_path: Path, restore_root_logging) -> None:
    config = logging_utils.LoggingConfig(level=logging.DEBUG, log_dir=tmp_path, console=False)

    log_path = logging_utils.setup_logging(config, force=True)
    logging.getLogger("inkwell.test").debug("hello from the test")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert log_path == tmp_path / "inkwell.log"
    assert logging_utils.get_log_path() == log_path
    assert "hello from the test" in log_path.read_text(encoding="utf-8")
    assert logging.getLogger("httpx").level == logging.WARNING


def test_components_log_at_their_own_levels(tmp_path: Path, restore_root_logging) -> None:
    settings = Settings(log_dir=str(tmp_path), log_levels={"loop": "debug", "tools": "error", "editor": "chatty"})

    log_path = app.configure_logging(settings, force=True)
    logging.getLogger("inkwell.ai.orchestration.loop").debug("loop detail")
    logging.getLogger("inkwell.ai.tools.executor").warning("tool warning")
    logging.getLogger("inkwell.documents.store").debug("store detail")
    for handler in logging.getLogger().handlers:
        handler.flush()

    text = log_path.read_text(encoding="utf-8")
    assert log_path.parent == tmp_path
    assert logging.getLogger().level == logging.INFO
    assert "loop detail" in text
    assert "tool warning" not in text
    assert "store detail" not in text
    assert "Ignoring unknown log level 'chatty' for inkwell.editor" in text


def test_parse_level() -> None:
    assert logging_utils.parse_level("warning") == logging.WARNING
    assert logging_utils.parse_level(15) == 15
    with pytest.raises(ValueError):
        logging_utils.parse_level("loud")
    with pytest.raises(ValueError):
        logging_utils.parse_level(True)


def test_zero_iteration_override_is_a_usage_error(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(app, "configure_logging", lambda *args, **kwargs: None)

    assert app.main(["--settings-path", str(tmp_path / "s.json"), "--set", "max_tool_iterations=0", "hi"]) == 2
