"""YAML + environment variable configuration loading.

Config file: config/siteadmin.yaml (or the path in SITEADMIN_CONFIG)
Env var override prefix: SITEADMIN_
Nesting convention: double underscore (e.g. SITEADMIN_SERVER__PORT)

The deployment variables AUTH_SECRET, ALLOWED_IPS and ADMIN_PASSWORD are
read verbatim (no type coercion) and win over everything else.
"""

from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Any

import yaml

_DEFAULT_CONFIG_PATH = Path("config/siteadmin.yaml")

DEFAULT_SECRET = "default-secret-key-change-in-production"

FILE_KEYS = ("members", "news", "publications")

_DEFAULTS: dict[str, Any] = {
    "server": {
        "host": "0.0.0.0",
        "port": 3001,
        "production": False,
    },
    "auth": {
        "secret": "",
        "allowed_ips": "",
        "admin_password": "",
        "token_max_age_seconds": 24 * 60 * 60,
    },
    "data": {
        "project_path": "../site",
        "data_dir": "data",
        "files": {
            "members": "members.csv",
            "news": "news.csv",
            "publications": "publications.csv",
        },
    },
    "build": {
        "command": "npm run build",
    },
    "logging": {
        "level": "INFO",
    },
}

ENV_PREFIX = "SITEADMIN_"

# Plain deployment variables -> (section, key)
_PLAIN_ENV_VARS = {
    "AUTH_SECRET": ("auth", "secret"),
    "ALLOWED_IPS": ("auth", "allowed_ips"),
    "ADMIN_PASSWORD": ("auth", "admin_password"),
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Merge override into base, recursively for nested dicts."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _coerce_value(value: str) -> int | float | bool | str:
    """Attempt to coerce a string env var value to a typed value."""
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    return value


def _default_leaf(parts: list[str]) -> Any:
    node: Any = _DEFAULTS
    for part in parts:
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


def _apply_env_overrides(config: dict) -> dict:
    """Apply SITEADMIN_ prefixed environment variables as overrides.

    Double underscore separates nesting levels:
        SITEADMIN_SERVER__PORT=9090 -> config["server"]["port"] = 9090

    Keys whose default is a string (passwords, secrets, paths) keep the raw
    value; only the rest go through type coercion.
    """
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX) or key == "SITEADMIN_CONFIG":
            continue
        parts = key[len(ENV_PREFIX) :].lower().split("__")
        target = config
        for part in parts[:-1]:
            if part not in target:
                target[part] = {}
            target = target[part]
        if isinstance(_default_leaf(parts), str):
            target[parts[-1]] = value
        else:
            target[parts[-1]] = _coerce_value(value)
    return config


def _apply_plain_env(config: dict) -> dict:
    for name, (section, key) in _PLAIN_ENV_VARS.items():
        value = os.environ.get(name)
        if value is not None:
            config[section][key] = value
    if os.environ.get("NODE_ENV") == "production":
        config["server"]["production"] = True
    return config


def load_config(config_path: Path | None = None) -> dict[str, Any]:
    """Load configuration from YAML file with env var overrides.

    Precedence (highest wins): plain deployment vars > SITEADMIN_ vars >
    YAML file > defaults.
    """
    config = copy.deepcopy(_DEFAULTS)

    env_path = os.environ.get("SITEADMIN_CONFIG")
    path = config_path or (Path(env_path) if env_path else _DEFAULT_CONFIG_PATH)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config = _deep_merge(config, file_config)

    config = _apply_env_overrides(config)
    config = _apply_plain_env(config)
    return config


def resolve_csv_paths(config: dict[str, Any]) -> dict[str, Path]:
    """Map each file key to its absolute CSV path.

    Relative data_dir resolves against project_path, relative file names
    against data_dir.
    """
    data = config["data"]
    project_path = Path(data["project_path"])
    data_dir = project_path / data["data_dir"]
    return {key: (data_dir / data["files"][key]).resolve() for key in FILE_KEYS}
