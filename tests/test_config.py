"""Tests for configuration loading."""
import pytest

from config import load_config, resolve_path, _deep_merge


def test_defaults_load(monkeypatch):
    for key in ("LIGHTWATCH_DB_PATH", "LIGHTWATCH_EVAL_INTERVAL",
                "LIGHTWATCH_LOG_LEVEL", "LIGHTWATCH_WEBHOOK_WORKERS"):
        monkeypatch.delenv(key, raising=False)
    config = load_config()
    assert config["engine"]["interval_seconds"] == 30
    assert config["notifier"]["max_workers"] >= 1
    assert config["database"]["path"].endswith(".db")


def test_override_file_merges(tmp_path, monkeypatch):
    monkeypatch.delenv("LIGHTWATCH_EVAL_INTERVAL", raising=False)
    path = tmp_path / "override.yaml"
    path.write_text("engine:\n  interval_seconds: 60\n")
    config = load_config(str(path))
    assert config["engine"]["interval_seconds"] == 60
    assert "max_workers" in config["notifier"]


def test_env_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("LIGHTWATCH_DB_PATH", str(tmp_path / "x.db"))
    monkeypatch.setenv("LIGHTWATCH_EVAL_INTERVAL", "10")
    monkeypatch.setenv("LIGHTWATCH_WEBHOOK_WORKERS", "3")
    config = load_config()
    assert config["database"]["path"] == str(tmp_path / "x.db")
    assert config["engine"]["interval_seconds"] == 10
    assert config["notifier"]["max_workers"] == 3


@pytest.mark.parametrize("body", [
    "engine:\n  interval_seconds: 0\n",
    "notifier:\n  max_workers: 0\n",
])
def test_invalid_values_rejected(tmp_path, monkeypatch, body):
    monkeypatch.delenv("LIGHTWATCH_EVAL_INTERVAL", raising=False)
    monkeypatch.delenv("LIGHTWATCH_WEBHOOK_WORKERS", raising=False)
    path = tmp_path / "bad.yaml"
    path.write_text(body)
    with pytest.raises(ValueError):
        load_config(str(path))


def test_deep_merge_nested():
    base = {"a": {"b": 1, "c": 2}, "d": 3}
    merged = _deep_merge(base, {"a": {"c": 5}})
    assert merged == {"a": {"b": 1, "c": 5}, "d": 3}
    assert base["a"]["c"] == 2


def test_rules_path_default_and_env(monkeypatch, tmp_path):
    monkeypatch.delenv("LIGHTWATCH_RULES_PATH", raising=False)
    assert load_config()["rules"]["path"] == "config/alert_rules.yaml"
    assert resolve_path("config/alert_rules.yaml").exists()

    monkeypatch.setenv("LIGHTWATCH_RULES_PATH", str(tmp_path / "r.yaml"))
    assert load_config()["rules"]["path"] == str(tmp_path / "r.yaml")


def test_empty_rules_path_rejected(tmp_path, monkeypatch):
    monkeypatch.delenv("LIGHTWATCH_RULES_PATH", raising=False)
    path = tmp_path / "bad.yaml"
    path.write_text("rules:\n  path: ''\n")
    with pytest.raises(ValueError):
        load_config(str(path))
