"""
Configuration loader (``distribution_config.loader``).

Responsibility
--------------
Reads the packaged defaults, an optional overlay YAML file and the
environment, and merges them into one EngineConfig.  Callers use
``distribution_config.get_active_config()`` rather than this module.

Precedence (later wins)
-----------------------
1. ``defaults.yaml`` shipped with the package
2. the YAML file named by ``DISTRIBUTION_CONFIG`` (or passed explicitly)
3. ``DATABASE_URL`` and ``FRONTEND_URL`` environment variables

Failure modes
-------------
* Missing overlay file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Top level not a mapping, unknown keys, invalid values -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from distribution_config.schema import EngineConfig

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"

CONFIG_PATH_ENV = "DISTRIBUTION_CONFIG"

# environment variable -> config key
ENV_OVERRIDES: dict[str, str] = {
    "DATABASE_URL": "database_url",
    "FRONTEND_URL": "confirmation_base_url",
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def merge_settings(
    defaults: Mapping[str, Any],
    overlay: Mapping[str, Any] | None,
    environ: Mapping[str, str],
) -> dict[str, Any]:
    merged = dict(defaults)
    if overlay:
        merged.update(overlay)
    for env_name, key in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value:
            merged[key] = value
    return merged


def load_config(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> EngineConfig:
    """Merge defaults, overlay file and environment into an EngineConfig."""
    environ = environ if environ is not None else {}
    if config_path is None and environ.get(CONFIG_PATH_ENV):
        config_path = Path(environ[CONFIG_PATH_ENV])

    overlay = load_yaml_file(config_path) if config_path is not None else None
    return EngineConfig.from_mapping(
        merge_settings(load_yaml_file(DEFAULTS_PATH), overlay, environ)
    )


def compute_checksum(config: EngineConfig) -> str:
    """Deterministic SHA-256 of a config, with the database URL left out."""
    payload = {
        name: getattr(config, name)
        for name in sorted(EngineConfig.field_names())
        if name != "database_url"
    }
    return hashlib.sha256(json.dumps(payload, sort_keys=True).encode()).hexdigest()
