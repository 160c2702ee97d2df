from __future__ import annotations

import json
import logging

import pytest

from privbroker.broker import getBroker
from privbroker.gate import CredentialGate
from privbroker.settings import Settings, SettingsError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("POLICY_PRECHECK", "POLKIT_ACTION", "MAX_WORKERS", "LOG_LEVEL"):
        monkeypatch.delenv(f"PRIVBROKER_{name}", raising=False)


def test_missing_file_gives_defaults(tmp_path):
    settings = Settings.load(str(tmp_path / "nope.json"))
    assert settings.policy_precheck is True
    assert settings.polkit_action == "org.freedesktop.policykit.exec"
    assert settings.max_workers == 4
    assert settings.log_level == "WARNING"


def test_file_overrides_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"policy_precheck": False, "max_workers": 2}))
    settings = Settings.load(str(path))
    assert settings.policy_precheck is False
    assert settings.max_workers == 2
    assert settings.polkit_action == "org.freedesktop.policykit.exec"


def test_environment_overrides_file(tmp_path, monkeypatch):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"max_workers": 2, "log_level": "info"}))
    monkeypatch.setenv("PRIVBROKER_MAX_WORKERS", "8")
    settings = Settings.load(str(path))
    assert settings.max_workers == 8
    assert settings.log_level == "INFO"


def test_config_path_from_environment(tmp_path, monkeypatch):
    path = tmp_path / "elsewhere.json"
    path.write_text(json.dumps({"polkit_action": "org.example.run"}))
    monkeypatch.setenv("PRIVBROKER_CONFIG", str(path))
    assert Settings.load().polkit_action == "org.example.run"


def test_unknown_keys_are_ignored(tmp_path, caplog):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"colour": "blue"}))
    with caplog.at_level(logging.WARNING):
        settings = Settings.load(str(path))
    assert "colour" not in settings.model_dump()
    assert "colour" in caplog.text


def test_malformed_json(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{nope")
    with pytest.raises(SettingsError):
        Settings.load(str(path))


def test_not_an_object(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("[1, 2]")
    with pytest.raises(SettingsError):
        Settings.load(str(path))


@pytest.mark.parametrize(
    "values",
    [
        {"max_workers": "many"},
        {"max_workers": 0},
        {"log_level": "LOUD"},
        {"policy_precheck": "perhaps"},
    ],
)
def test_invalid_values(values):
    with pytest.raises(SettingsError):
        Settings.fromDict(values)


def test_invalid_environment_value(monkeypatch):
    monkeypatch.setenv("PRIVBROKER_MAX_WORKERS", "0")
    with pytest.raises(SettingsError):
        Settings.fromDict()


def test_get_broker_uses_settings():
    settings = Settings.fromDict({"policy_precheck": False, "polkit_action": "org.example.run", "max_workers": 1})
    broker = getBroker(CredentialGate(), settings)
    try:
        assert broker.policy.precheck is False
        assert broker.policy.action_id == "org.example.run"
        assert broker._executor._max_workers == 1
    finally:
        broker.shutdown()
