import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from src.configuration.models import Settings

ENVIRONMENTS = ("local", "production")
ENV_PREFIX = "APP_"
ENV_SEPARATOR = "__"

DEFAULT_CONFIGURATION_DIR = Path(__file__).resolve().parents[2] / "configuration"


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")
    return data


def _deep_merge(base: dict[str, Any], overlay: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overlay.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """
    Collect APP_SECTION__KEY=value variables into a nested mapping.
    APP_ENVIRONMENT selects the overlay file and is not a setting.
    """
    overrides: dict[str, Any] = {}
    for name, value in environ.items():
        if not name.startswith(ENV_PREFIX) or ENV_SEPARATOR not in name:
            continue
        path = name[len(ENV_PREFIX) :].lower().split(ENV_SEPARATOR)
        node = overrides
        for part in path[:-1]:
            node = node.setdefault(part, {})
        node[path[-1]] = value
    return overrides


def load_settings(
    config_dir: Path = DEFAULT_CONFIGURATION_DIR,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """
    Load base.yaml, the overlay for APP_ENVIRONMENT, then APP_* variables.
    Raises FileNotFoundError if base.yaml is missing.
    Raises ValueError if the environment is unknown or the result is invalid.
    """
    env = os.environ if environ is None else environ

    base_path = config_dir / "base.yaml"
    if not base_path.exists():
        raise FileNotFoundError(f"Configuration file not found at: {base_path}")
    data = _read_yaml(base_path)

    environment = env.get(f"{ENV_PREFIX}ENVIRONMENT", "local").lower()
    if environment not in ENVIRONMENTS:
        raise ValueError(
            f"{environment} is not a supported environment. Use either `local` or `production`."
        )
    overlay_path = config_dir / f"{environment}.yaml"
    if overlay_path.exists():
        data = _deep_merge(data, _read_yaml(overlay_path))

    data = _deep_merge(data, _env_overrides(env))

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Configuration validation failed:\n{e}") from e
