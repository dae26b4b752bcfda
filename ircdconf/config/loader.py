"""Config loading and initialization."""

from __future__ import annotations

import os
import re
import shutil
from pathlib import Path
from typing import Any

import yaml

from ircdconf.config.errors import ConfigSchemaError, ConfigValidationError
from ircdconf.config.schema import IRCdConfig, parse_config
from ircdconf.core.logging import get_logger


DEFAULT_CONFIG_PATH = Path(__file__).with_name("defaults.yml")
_ENV_TOKEN_RE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-(.*?))?\}")


def load_config(path: Path) -> IRCdConfig:
    if not path.exists():
        raise FileNotFoundError(f"config file does not exist: {path}")
    with path.open("r", encoding="utf-8") as handle:
        try:
            raw = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ConfigSchemaError(f"could not parse config file {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigSchemaError(f"config file {path} must contain a mapping at the top level")
    raw = _interpolate_env(raw)

    logger = get_logger("ircdconf.config")
    config = parse_config(raw, logger=logger)
    logger.info(
        "loaded configuration from %s: %d oper classes, %d opers, %d tls listeners",
        path,
        len(config.oper_classes),
        len(config.operators),
        len(config.tls_listeners),
        extra={"log_type": "server"},
    )
    return config


def initialize_config(path: Path, force: bool = False) -> Path:
    if path.exists() and not force:
        raise FileExistsError(f"config already exists: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(DEFAULT_CONFIG_PATH, path)
    return path


def _interpolate_env(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _interpolate_env(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    if isinstance(value, str):
        return _interpolate_string(value)
    return value


def _interpolate_string(value: str) -> str:
    if "${" not in value:
        return value

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        default = match.group(2)
        resolved = os.environ.get(name)
        if resolved is not None:
            return resolved
        if default is not None:
            return default
        token = match.group(0)
        raise ConfigValidationError(f"missing required environment variable '{name}' referenced by '{token}'")

    return _ENV_TOKEN_RE.sub(_replace, value)
