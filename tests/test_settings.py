"""Tests for the settings persistence layer."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from kiteready.services.settings import DEFAULT_SETTLE_DELAY, Settings, SettingsStore, redact_secret


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "KITEREADY_ORACLE",
        "KITEREADY_TELEMETRY_DIR",
        "KITEREADY_DEBUG_LOGGING",
        "KITEREADY_TELEMETRY_OPT_IN",
        "KITEREADY_SETTLE_DELAY",
    ):
        monkeypatch.delenv(name, raising=False)


def test_load_returns_defaults_when_file_missing(tmp_path: Path) -> None:
    settings = SettingsStore(tmp_path / "settings.json").load()

    assert settings == Settings()
    assert settings.settle_delay_seconds == DEFAULT_SETTLE_DELAY


def test_save_and_load_roundtrip(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "settings.json"
    original = Settings(
        settle_delay_seconds=2.5,
        telemetry_opt_in=True,
        telemetry_dir=str(tmp_path / "telemetry"),
        debug_logging=True,
        oracle="kite_oracle:Oracle",
    )

    SettingsStore(path).save(original)

    assert SettingsStore(path).load() == original
    assert json.loads(path.read_text(encoding="utf-8"))["version"] == 1


def test_unknown_keys_are_ignored(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"version": 1, "settle_delay_seconds": 1.0, "theme": "dark"}), encoding="utf-8")

    settings = SettingsStore(path).load()

    assert settings.settle_delay_seconds == 1.0


def test_invalid_json_falls_back_to_defaults(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")

    assert SettingsStore(path).load() == Settings()
    assert "not valid JSON" in caplog.text


def test_unversioned_payload_is_rewritten(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"debug_logging": True}), encoding="utf-8")

    SettingsStore(path).load()

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["version"] == 1
    assert payload["debug_logging"] is True


def test_cli_overrides_ignore_unknown_fields(tmp_path: Path) -> None:
    store = SettingsStore(tmp_path / "settings.json")
    store.save(Settings(oracle="pkg:Oracle"))

    settings = store.load(overrides={"settle_delay_seconds": 0.5, "bogus": 1})

    assert settings.oracle == "pkg:Oracle"
    assert settings.settle_delay_seconds == 0.5
    assert not hasattr(settings, "bogus")


def test_environment_overrides_win(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KITEREADY_SETTLE_DELAY", "8")
    monkeypatch.setenv("KITEREADY_TELEMETRY_OPT_IN", "yes")
    monkeypatch.setenv("KITEREADY_ORACLE", "pkg.mod:factory")

    settings = SettingsStore(tmp_path / "settings.json").load(overrides={"settle_delay_seconds": 1.0})

    assert settings.settle_delay_seconds == 8.0
    assert settings.telemetry_opt_in is True
    assert settings.oracle == "pkg.mod:factory"


def test_invalid_float_env_override_is_ignored(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KITEREADY_SETTLE_DELAY", "soon")

    settings = SettingsStore(tmp_path / "settings.json").load()

    assert settings.settle_delay_seconds == DEFAULT_SETTLE_DELAY


def test_negative_settle_delay_is_clamped(tmp_path: Path) -> None:
    settings = SettingsStore(tmp_path / "settings.json").load(overrides={"settle_delay_seconds": -4})

    assert settings.settle_delay_seconds == 0.0


def test_redact_secret() -> None:
    assert redact_secret("") == ""
    assert redact_secret("abc") == "***"
    assert redact_secret("hunter22") == "hu****22"


def test_saved_payload_holds_only_known_fields(tmp_path: Path) -> None:
    path = SettingsStore(tmp_path / "settings.json").save(Settings())

    assert set(json.loads(path.read_text(encoding="utf-8"))) == {
        "version",
        "settle_delay_seconds",
        "telemetry_opt_in",
        "telemetry_dir",
        "debug_logging",
        "oracle",
    }
