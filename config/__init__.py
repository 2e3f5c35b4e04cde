"""Configuration management."""
import os
import yaml
from pathlib import Path

_DEFAULT_CONFIG = Path(__file__).parent / "default_config.yaml"
_PROJECT_ROOT = Path(__file__).parent.parent


def load_config(path=None):
    """Load config from YAML, merging defaults with optional overrides."""
    with open(_DEFAULT_CONFIG) as f:
        config = yaml.safe_load(f)

    if path and Path(path).exists():
        with open(path) as f:
            overrides = yaml.safe_load(f) or {}
        config = _deep_merge(config, overrides)

    # Environment variable overrides
    env_map = {
        "LIGHTWATCH_DB_PATH": ("database", "path"),
        "LIGHTWATCH_EVAL_INTERVAL": ("engine", "interval_seconds"),
        "LIGHTWATCH_LOG_LEVEL": ("logging", "level"),
        "LIGHTWATCH_WEBHOOK_WORKERS": ("notifier", "max_workers"),
        "LIGHTWATCH_RULES_PATH": ("rules", "path"),
    }
    for env_key, config_path in env_map.items():
        val = os.environ.get(env_key)
        if val:
            d = config
            for k in config_path[:-1]:
                d = d.setdefault(k, {})
            try:
                d[config_path[-1]] = int(val)
            except ValueError:
                d[config_path[-1]] = val

    _validate_config(config)
    return config


def resolve_path(path):
    """Relative config paths are taken from the project root when not found from cwd."""
    p = Path(path)
    if p.is_absolute() or p.exists():
        return p
    return _PROJECT_ROOT / p


def _deep_merge(base, override):
    """Recursively merge override into base dict."""
    result = base.copy()
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _validate_config(config):
    """Basic config validation."""
    required_sections = ["database", "engine", "notifier", "rules", "logging"]
    for section in required_sections:
        if section not in config:
            raise ValueError(f"Missing required config section: {section}")

    interval = config["engine"].get("interval_seconds")
    if not isinstance(interval, (int, float)) or interval < 1:
        raise ValueError("engine.interval_seconds must be >= 1")

    workers = config["notifier"].get("max_workers")
    if not isinstance(workers, int) or workers < 1:
        raise ValueError("notifier.max_workers must be >= 1")

    if not config["rules"].get("path"):
        raise ValueError("rules.path must be set")
