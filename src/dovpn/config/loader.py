"""Settings loader for dovpn.

Resolves :class:`DeploymentSettings` from CLI flags, environment variables,
the user config file and built-in defaults.
"""

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from dovpn.config.defaults import (
    DEFAULT_CONFIG_DIR,
    ENV_VAR_MAP,
    USER_CONFIG_FILENAMES,
)
from dovpn.config.validator import to_config_error
from dovpn.lib.errors import ConfigError
from dovpn.models.deployment import DeploymentSettings

logger = logging.getLogger(__name__)


def _parse_env_value(field_name: str, value: str) -> Any:
    """Parse an environment variable value for a settings field.

    Args:
        field_name: Settings field the variable maps to
        value: Raw string value

    Returns:
        Parsed value (bool for flags, str otherwise)
    """
    if field_name == "auto_configure":
        return value.lower() in ("true", "1", "yes", "on")
    return value


def _get_env_values(env_vars: Mapping[str, str]) -> dict[str, Any]:
    """Collect settings values present in the environment."""
    values: dict[str, Any] = {}
    for field_name, env_var_name in ENV_VAR_MAP.items():
        raw = env_vars.get(env_var_name)
        if raw:
            values[field_name] = _parse_env_value(field_name, raw)
    return values


def load_user_config(config_dir: Path | None = None) -> dict[str, Any]:
    """Load the user config file from the config directory.

    ``config.yml`` is preferred over ``config.yaml`` when both exist.

    Args:
        config_dir: Directory to search (defaults to ``~/.dovpn``)

    Returns:
        Parsed mapping, or an empty dict if no config file exists

    Raises:
        ConfigError: If the file cannot be read or is not a YAML mapping
    """
    search_dir = config_dir or DEFAULT_CONFIG_DIR
    candidates = [search_dir / filename for filename in USER_CONFIG_FILENAMES]
    existing = [path for path in candidates if path.exists()]
    if not existing:
        return {}

    config_path = existing[0]
    if len(existing) > 1:
        logger.info(
            f"Both {existing[0]} and {existing[1]} exist. Using {config_path}."
        )

    try:
        content = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(
            "user_config", f"Failed to read {config_path}: {e}"
        ) from e
    except yaml.YAMLError as e:
        raise ConfigError(
            "user_config", f"Failed to parse {config_path}: {e}"
        ) from e

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ConfigError(
            "user_config", f"Expected a mapping in {config_path}, got {type(content).__name__}"
        )
    return content


def load_settings(
    cli_values: Mapping[str, Any] | None = None,
    env_vars: Mapping[str, str] | None = None,
    config_dir: Path | None = None,
) -> DeploymentSettings:
    """Resolve deployment settings.

    Priority (highest first):
        1. CLI flags (values that are not None)
        2. Environment variables (``DIGITALOCEAN_TOKEN``, ``DOVPN_*``)
        3. User config file (``~/.dovpn/config.yaml``)
        4. Model defaults

    The user config file is read from ``--config-dir``, else
    ``DOVPN_CONFIG_DIR``, else ``config_dir``, else ``~/.dovpn``.

    Args:
        cli_values: Values supplied on the command line
        env_vars: Environment mapping (defaults to ``os.environ``)
        config_dir: Directory holding the user config file

    Returns:
        Validated DeploymentSettings

    Raises:
        ConfigError: If the token is missing or any value is invalid
    """
    env = os.environ if env_vars is None else env_vars
    cli_dir = (cli_values or {}).get("config_dir")
    search_dir = _explicit_config_dir(cli_dir, env) or config_dir

    resolved: dict[str, Any] = {}
    resolved.update(load_user_config(search_dir))
    resolved.update(_get_env_values(env))
    resolved.update({k: v for k, v in (cli_values or {}).items() if v is not None})

    if not resolved.get("token"):
        raise ConfigError(
            "token",
            f"No API token provided. Set {ENV_VAR_MAP['token']} or pass --token.",
        )

    try:
        return DeploymentSettings(**resolved)
    except PydanticValidationError as e:
        raise to_config_error(e, "CLI flags, environment and user config") from e


def _explicit_config_dir(
    cli_dir: str | Path | None, env_vars: Mapping[str, str]
) -> Path | None:
    """Return the config directory named by a flag or the environment."""
    if cli_dir:
        return Path(cli_dir).expanduser()
    env_dir = env_vars.get(ENV_VAR_MAP["config_dir"])
    if env_dir:
        return Path(env_dir).expanduser()
    return None


def resolve_config_dir(
    cli_dir: str | Path | None = None,
    env_vars: Mapping[str, str] | None = None,
) -> Path:
    """Resolve the directory holding profiles and deployment records.

    Uses the same precedence as :func:`load_settings`: the ``--config-dir``
    flag, then ``DOVPN_CONFIG_DIR``, then ``config_dir`` in
    ``~/.dovpn/config.yaml``, then ``~/.dovpn``.

    Args:
        cli_dir: Value of the ``--config-dir`` flag, if given
        env_vars: Environment mapping (defaults to ``os.environ``)

    Returns:
        The resolved directory with ``~`` expanded

    Raises:
        ConfigError: If the user config file cannot be read
    """
    env = os.environ if env_vars is None else env_vars
    explicit = _explicit_config_dir(cli_dir, env)
    if explicit is not None:
        return explicit

    configured = load_user_config(DEFAULT_CONFIG_DIR).get("config_dir")
    if configured:
        return Path(configured).expanduser()
    return DEFAULT_CONFIG_DIR
