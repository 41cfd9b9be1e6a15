"""Tests for the settings persistence layer."""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from pathlib import Path

import pytest

from inkwell.ai.orchestration import MAX_ITERATIONS
from inkwell.services.settings import SecretVault, Settings, SettingsStore, check_setting_value, redact_secret

_ENV_NAMES = (
    "INKWELL_API_KEY",
    "INKWELL_BASE_URL",
    "INKWELL_MODEL",
    "INKWELL_ORGANIZATION",
    "INKWELL_DEBUG_LOGGING",
    "INKWELL_REQUEST_TIMEOUT",
    "INKWELL_TEMPERATURE",
    "INKWELL_TOOL_TIMEOUT",
    "INKWELL_MAX_TOOL_ITERATIONS",
    "INKWELL_MAX_RETRIES",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def _store(tmp_path: Path) -> SettingsStore:
    return SettingsStore(tmp_path / "settings.json", vault=SecretVault(key_path=tmp_path / "settings.key"))


def test_load_returns_defaults_when_file_missing(tmp_path: Path) -> None:
    settings = _store(tmp_path).load()

    assert settings == Settings()
    assert settings.max_tool_iterations == MAX_ITERATIONS


def test_save_and_load_roundtrip(tmp_path: Path) -> None:
    original = Settings(
        base_url="https://example.com/v1",
        api_key="super-secret",
        model="gpt-4.1-mini",
        organization="acme",
        max_tool_iterations=12,
        tool_timeout=5.0,
        default_headers={"X-Test": "1"},
        metadata={"env": "dev"},
    )

    _store(tmp_path).save(original)
    reloaded = _store(tmp_path).load()

    assert reloaded == original


def test_api_key_is_encrypted_at_rest(tmp_path: Path) -> None:
    store = _store(tmp_path)

    path = store.save(Settings(api_key="super-secret"))

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert "api_key" not in payload
    assert payload["api_key_ciphertext"].startswith("fernet:")
    assert "super-secret" not in path.read_text(encoding="utf-8")
    assert payload["version"] == 1
    assert (tmp_path / "settings.key").exists()


def test_load_legacy_plaintext_api_key(tmp_path: Path) -> None:
    target = tmp_path / "settings.json"
    target.write_text(json.dumps({"base_url": "https://old", "api_key": "plain-key", "model": "gpt-3.5"}), encoding="utf-8")

    loaded = _store(tmp_path).load()

    assert loaded.api_key == "plain-key"
    assert loaded.base_url == "https://old"


def test_unreadable_ciphertext_drops_the_key(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    target = tmp_path / "settings.json"
    target.write_text(json.dumps({"api_key_ciphertext": "fernet:garbage", "model": "m"}), encoding="utf-8")

    with caplog.at_level(logging.WARNING, logger="inkwell.services.settings"):
        loaded = _store(tmp_path).load()

    assert loaded.api_key == ""
    assert loaded.model == "m"
    assert "Unable to decrypt API key" in caplog.text


def test_unknown_keys_and_bad_json_are_tolerated(tmp_path: Path) -> None:
    target = tmp_path / "settings.json"
    target.write_text(json.dumps({"model": "m", "theme": "dark", "version": 1}), encoding="utf-8")
    assert _store(tmp_path).load().model == "m"

    target.write_text("{not json", encoding="utf-8")
    assert _store(tmp_path).load() == Settings()

    target.write_text("[1, 2]", encoding="utf-8")
    assert _store(tmp_path).load() == Settings()


def test_env_overrides_take_precedence(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    _store(tmp_path).save(Settings(base_url="https://local", api_key="abc"))
    monkeypatch.setenv("INKWELL_BASE_URL", "https://env-base")
    monkeypatch.setenv("INKWELL_API_KEY", "env-key")
    monkeypatch.setenv("INKWELL_DEBUG_LOGGING", "yes")
    monkeypatch.setenv("INKWELL_MAX_TOOL_ITERATIONS", "4")
    monkeypatch.setenv("INKWELL_TOOL_TIMEOUT", "2.5")

    overridden = _store(tmp_path).load(overrides={"base_url": "https://explicit", "model": "explicit-model"})

    assert overridden.base_url == "https://env-base"
    assert overridden.api_key == "env-key"
    assert overridden.model == "explicit-model"
    assert overridden.debug_logging is True
    assert overridden.max_tool_iterations == 4
    assert overridden.tool_timeout == 2.5


def test_invalid_numeric_env_override_is_ignored(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    monkeypatch.setenv("INKWELL_MAX_RETRIES", "many")
    monkeypatch.setenv("INKWELL_TEMPERATURE", "warm")

    with caplog.at_level(logging.WARNING, logger="inkwell.services.settings"):
        settings = _store(tmp_path).load()

    assert settings.max_retries == 3
    assert settings.temperature == 0.7
    assert "INKWELL_MAX_RETRIES" in caplog.text
    assert "INKWELL_TEMPERATURE" in caplog.text


def test_out_of_range_iteration_ceiling_falls_back_to_default(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    monkeypatch.setenv("INKWELL_MAX_TOOL_ITERATIONS", "0")

    with caplog.at_level(logging.WARNING, logger="inkwell.services.settings"):
        settings = _store(tmp_path).load(overrides={"max_retries": -2})

    assert settings.max_tool_iterations == MAX_ITERATIONS
    assert settings.max_retries == Settings().max_retries
    assert settings.loop_config().max_iterations == MAX_ITERATIONS
    assert "max_tool_iterations must be an integer of at least 1" in caplog.text


def test_check_setting_value() -> None:
    check_setting_value("max_tool_iterations", 1)
    check_setting_value("model", "")
    with pytest.raises(ValueError):
        check_setting_value("max_tool_iterations", 0)
    with pytest.raises(ValueError):
        check_setting_value("max_retries", True)


def test_explicit_overrides_skip_unknown_and_none_values(tmp_path: Path) -> None:
    settings = _store(tmp_path).load(overrides={"model": None, "bogus": 1, "temperature": 0.1})

    assert settings.model == Settings().model
    assert settings.temperature == 0.1


def test_client_settings_and_loop_config() -> None:
    settings = Settings(api_key="k", max_tool_iterations=7, tool_timeout=0, diff_char_limit=100)

    client_settings = settings.client_settings()
    loop_config = settings.loop_config()

    assert client_settings.api_key == "k"
    assert client_settings.default_headers is None
    assert client_settings.metadata is None
    assert loop_config.max_iterations == 7
    assert loop_config.tool_timeout is None
    assert loop_config.diff_char_limit == 100
    assert replace(settings, tool_timeout=3.0).loop_config().tool_timeout == 3.0


def test_vault_rejects_foreign_tokens(tmp_path: Path) -> None:
    vault = SecretVault(key_path=tmp_path / "vault.key")

    assert vault.encrypt("") == ""
    assert vault.decrypt(vault.encrypt("hunter2")) == "hunter2"
    with pytest.raises(ValueError):
        vault.decrypt("plain:abc")


def test_redact_secret() -> None:
    assert redact_secret("") == ""
    assert redact_secret("abcd") == "****"
    assert redact_secret("sk-123456") == "sk*****56"
