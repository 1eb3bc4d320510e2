"""Layered YAML configuration.

Precedence, lowest to highest: built-in defaults, ``~/.planwf/config.yml``,
``<project>/.planwf/config.yml``, then explicit overrides (CLI flags).
"""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from planwf.application.config_models import PlanwfConfig
from planwf.domain.constants import CONFIG_DIRNAME, CONFIG_FILENAME
from planwf.domain.errors import PlanwfError

logger = logging.getLogger(__name__)


class ConfigLoadError(PlanwfError):
    """A config file is unreadable or malformed, or the merged result is invalid."""

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        self.message = message
        self.path = path
        super().__init__(message if path is None else f"{message}: {path}")


def config_paths(project_root: Path, user_home: Path) -> list[Path]:
    """Config files in ascending precedence."""
    return [
        user_home / CONFIG_DIRNAME / CONFIG_FILENAME,
        project_root / CONFIG_DIRNAME / CONFIG_FILENAME,
    ]


def _merge(base: dict[str, Any], layer: dict[str, Any]) -> dict[str, Any]:
    """Nested mappings merge key by key; any other value in layer replaces."""
    merged = dict(base)
    for key, value in layer.items():
        current = merged.get(key)
        if isinstance(value, dict) and isinstance(current, dict):
            merged[key] = _merge(current, value)
        else:
            merged[key] = value
    return merged


def _read_layer(path: Path) -> dict[str, Any]:
    """Parse one config file; a missing or empty file is an empty layer."""
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError as e:
        raise ConfigLoadError(f"Cannot read config file ({e.strerror})", path=path) from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigLoadError("Malformed YAML", path=path) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigLoadError("YAML root must be a mapping", path=path)

    logger.debug("Loaded config layer %s", path)
    return data


def load_config(
    *,
    project_root: Path | None = None,
    user_home: Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> PlanwfConfig:
    """Merge every layer and validate the result.

    A relative sessions_root is resolved against project_root. Override
    values of None are ignored, so unset CLI flags never mask a file value.

    Raises:
        ConfigLoadError: If a file is malformed or the merged config is invalid
    """
    project_root = project_root or Path.cwd()
    user_home = user_home or Path.home()

    merged: dict[str, Any] = PlanwfConfig().model_dump()
    for path in config_paths(project_root, user_home):
        merged = _merge(merged, _read_layer(path))
    if overrides:
        merged = _merge(merged, {k: v for k, v in overrides.items() if v is not None})

    try:
        config = PlanwfConfig.model_validate(merged)
    except ValidationError as e:
        raise ConfigLoadError(f"Invalid configuration: {e}") from e

    if not config.sessions_root.is_absolute():
        config = config.model_copy(update={"sessions_root": project_root / config.sessions_root})
    return config
