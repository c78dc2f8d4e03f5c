"""
Configuration validation utilities.

This module provides value checks for a merged configuration and the
environment-variable override layer applied on top of the config files.
"""
import logging
import os
from typing import Any, Dict, List, Optional

from omegaconf import DictConfig, OmegaConf

from ..types.types import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "TOOLPLAN"

# Environment variables with the prefix that are not configuration paths
_RESERVED_ENV_KEYS = {"CONFIG_DIR"}

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _has_path(config: DictConfig, path: str) -> bool:
    node: Any = config
    for part in path.split("."):
        if not isinstance(node, DictConfig) or part not in node:
            return False
        node = node[part]
    return True


def env_overrides(
    config: DictConfig, prefix: str = ENV_PREFIX, environ: Optional[Dict[str, str]] = None
) -> DictConfig:
    """
    Collect environment overrides for keys that exist in ``config``.

    Environment variables override config values using the format:
    {PREFIX}_{PATH}={VALUE}, with ``__`` separating nested keys.

    Example:
        TOOLPLAN_SCHEDULER__MAX_CONCURRENCY=4

    Values are parsed with OmegaConf's dotlist grammar, so ``4`` becomes an int,
    ``true`` a bool and ``null`` None.

    Args:
        config: Configuration whose keys may be overridden
        prefix: Environment variable prefix
        environ: Mapping to read instead of ``os.environ``

    Returns:
        Config holding only the overridden keys
    """
    environ = os.environ if environ is None else environ
    dotlist: List[str] = []

    for env_key, env_value in environ.items():
        if not env_key.startswith(f"{prefix}_"):
            continue
        name = env_key[len(prefix) + 1 :]
        if name in _RESERVED_ENV_KEYS:
            continue

        config_path = name.lower().replace("__", ".")
        if not _has_path(config, config_path):
            logger.debug("Ignoring %s: no config key '%s'", env_key, config_path)
            continue
        dotlist.append(f"{config_path}={env_value}")

    try:
        return OmegaConf.from_dotlist(dotlist)
    except Exception as e:
        raise ConfigurationError(f"Failed to parse environment overrides: {e!s}", cause=e)


def validate_config(config: DictConfig) -> None:
    """
    Check value ranges that the schema's types cannot express.

    Args:
        config: Merged configuration

    Raises:
        ConfigurationError: If a value is out of range
    """
    errors: List[str] = []

    level = str(config.logging.level).upper()
    if level not in _LOG_LEVELS:
        errors.append(f"logging.level must be one of {sorted(_LOG_LEVELS)}, got '{level}'")

    timeout = config.scheduler.task_timeout_s
    if timeout is not None and timeout <= 0:
        errors.append("scheduler.task_timeout_s must be positive")

    max_concurrency = config.scheduler.max_concurrency
    if max_concurrency is not None and max_concurrency < 1:
        errors.append("scheduler.max_concurrency must be at least 1")

    if config.estimator.average_task_duration_ms < 0:
        errors.append("estimator.average_task_duration_ms must be non-negative")

    if errors:
        raise ConfigurationError(
            f"Invalid configuration: {'; '.join(errors)}", context={"errors": errors}
        )
