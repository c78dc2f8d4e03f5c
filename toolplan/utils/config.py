"""
Configuration management utilities for toolplan.
"""
import copy
import os
from pathlib import Path
from typing import Any, Optional, Union, cast

from omegaconf import DictConfig, OmegaConf

from ..types.types import ConfigurationError
from .schema import ToolPlanConfig


class ConfigManager:
    """Central configuration manager for toolplan with lazy loading."""

    _instance: Optional["ConfigManager"] = None
    _config: Optional[DictConfig] = None
    _config_dir: Optional[Path] = None
    _initialized: bool = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        # Defer config initialization until first access
        pass

    def _initialize_config(self) -> None:
        """Initialize configuration from files (lazy loaded)."""
        if self._initialized:
            return

        from .validation import env_overrides, validate_config

        try:
            config_dir_override = os.environ.get("TOOLPLAN_CONFIG_DIR")
            if config_dir_override:
                config_path = Path(config_dir_override)
            else:
                config_path = Path(__file__).parent.parent.parent / "config"

            # Structured base config carries the schema's types and defaults
            configs_to_merge = [OmegaConf.structured(ToolPlanConfig)]

            config_file = config_path / "config.yaml"
            if config_file.exists():
                configs_to_merge.append(OmegaConf.load(config_file))

            merged_config = cast(DictConfig, OmegaConf.merge(*configs_to_merge))
            overrides = env_overrides(merged_config)
            merged_config = cast(DictConfig, OmegaConf.merge(merged_config, overrides))

            OmegaConf.resolve(merged_config)
            validate_config(merged_config)

            # Make config immutable
            OmegaConf.set_readonly(merged_config, True)

            ConfigManager._config = merged_config
            ConfigManager._config_dir = config_path
            ConfigManager._initialized = True

        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Failed to initialize configuration: {e!s}", cause=e)

    @property
    def config(self) -> DictConfig:
        """Get the full configuration (lazy loaded)."""
        if not self._initialized:
            self._initialize_config()
        if self._config is None:
            raise ConfigurationError("Configuration not initialized")
        return self._config

    @property
    def config_dir(self) -> Path:
        """Directory the configuration was loaded from."""
        if not self._initialized:
            self._initialize_config()
        return cast(Path, self._config_dir)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value by key.

        Args:
            key: Dot-notation path to config value
            default: Default value if key doesn't exist

        Returns:
            Configuration value; lists and dicts are returned as plain containers
        """
        value = OmegaConf.select(self.config, key, default=default)
        if OmegaConf.is_config(value):
            return OmegaConf.to_container(value, resolve=True)
        return value

    def resolve_path(self, value: Union[str, Path]) -> Path:
        """Resolve a configured path; relative paths are taken from the config directory."""
        path = Path(value).expanduser()
        if path.is_absolute():
            return path
        return self.config_dir / path

    def update(self, key: str, value: Any) -> None:
        """
        Update a configuration value.

        Args:
            key: Dot-notation path to config value
            value: New value to set

        Raises:
            ConfigurationError: If the key is unknown or the value has the wrong type
        """
        from .validation import validate_config

        if key.startswith("_"):
            raise ConfigurationError("Cannot update protected configuration fields")

        try:
            # Create a mutable copy; the structured schema still type-checks assignments
            mutable_config = copy.deepcopy(self.config)
            OmegaConf.set_readonly(mutable_config, False)
            OmegaConf.update(mutable_config, key, value, merge=True, force_add=False)
            validate_config(mutable_config)

            OmegaConf.set_readonly(mutable_config, True)
            ConfigManager._config = mutable_config

        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Failed to update config key '{key}': {e!s}", cause=e)

    def to_yaml(self) -> str:
        return OmegaConf.to_yaml(self.config)

    @classmethod
    def reset(cls) -> None:
        """Drop the singleton and its loaded configuration."""
        cls._instance = None
        cls._config = None
        cls._config_dir = None
        cls._initialized = False

    @staticmethod
    def get_instance() -> "ConfigManager":
        """Get the singleton instance of ConfigManager."""
        return ConfigManager()
