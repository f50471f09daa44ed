"""
Configuration loader — reads setup.yml into the SetupConfig model.

Resolution order for the file:
    --config flag  >  POSTINSTALL_CONFIG env var  >  bundled default
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

import yaml

from postinstall.core.data import DEFAULT_SETUP_FILE
from postinstall.core.models.config import SetupConfig

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "POSTINSTALL_CONFIG"


class ConfigError(Exception):
    """Raised when setup configuration is invalid or missing."""


def find_config_file(
    explicit: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Path:
    """Pick the configuration file to load.

    Args:
        explicit: Path given on the command line, if any.
        environ: Environment mapping (default: ``os.environ``).

    Returns:
        Path to the setup.yml to use. Not checked for existence.
    """
    if explicit is not None:
        return explicit
    env = os.environ if environ is None else environ
    from_env = env.get(CONFIG_ENV_VAR)
    if from_env:
        return Path(from_env).expanduser()
    return DEFAULT_SETUP_FILE


def load_config(path: Path | None = None) -> SetupConfig:
    """Load and validate setup configuration.

    Args:
        path: Explicit path to setup.yml. If None, uses ``find_config_file()``.

    Returns:
        Validated SetupConfig model.

    Raises:
        ConfigError: If the file is missing or invalid.
    """
    if path is None:
        path = find_config_file()

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading setup config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        config = SetupConfig.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid setup configuration: {e}") from e

    logger.info(
        "Loaded setup config from %s (%d packages, %d go tools, %d repositories)",
        path,
        len(config.packages),
        len(config.golang.tools),
        len(config.apt_repositories),
    )
    return config


def render(template: str, variables: Mapping[str, str]) -> str:
    """Substitute ``{var}`` placeholders with values.

    Simple string replacement, no escaping. Unknown placeholders are
    left as-is, so literal braces in config text survive.
    """
    result = template
    for key, value in variables.items():
        result = result.replace(f"{{{key}}}", str(value))
    return result
