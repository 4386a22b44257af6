"""
Layered configuration with YAML defaults and environment overrides.

Configuration is merged from the packaged ``default.yaml``, then
``config.yaml`` and ``{ENVIRONMENT}.yaml`` from the config directory, then
``CRYPTO_CHART_*`` environment variables (a ``.env`` file is loaded first).
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional
import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

PACKAGE_CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"


class ConfigError(Exception):
    """Configuration-related errors."""
    pass


class ConfigManager:
    """
    Configuration management system.
    
    Supports hierarchical configuration loading from YAML files and
    environment variable overrides using dot notation for lookups.
    """
    
    def __init__(
        self,
        config_dir: Optional[Path] = None,
        env_prefix: str = "CRYPTO_CHART"
    ):
        self.config_dir = Path(config_dir) if config_dir else None
        self.env_prefix = env_prefix
        
        self._config: Dict[str, Any] = {}
        self._loaded = False
    
    def initialize(self) -> None:
        """Load configuration from all sources."""
        logger.debug("Initializing configuration manager")
        
        load_dotenv()
        self.load_config()
        
        self._loaded = True
        logger.debug(f"Loaded configuration with {len(self._config)} top-level keys")
    
    def load_config(self) -> None:
        """Load configuration from all sources."""
        self._config = {}
        self._load_yaml_config()
        self._apply_env_overrides()
    
    def _load_yaml_config(self) -> None:
        """Load configuration from YAML files."""
        config_files = [PACKAGE_CONFIG_DIR / "default.yaml"]
        
        if self.config_dir:
            config_files.append(self.config_dir / "default.yaml")
            config_files.append(self.config_dir / "config.yaml")
            
            env = os.getenv("ENVIRONMENT", "development")
            config_files.append(self.config_dir / f"{env}.yaml")
        
        for config_file in config_files:
            if not config_file.exists():
                continue
            try:
                with open(config_file, 'r') as f:
                    file_config = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                raise ConfigError(f"Failed to load config from {config_file}: {e}") from e
            
            if not isinstance(file_config, dict):
                raise ConfigError(f"Config file {config_file} must contain a mapping")
            
            self._merge_config(self._config, file_config)
            logger.debug(f"Loaded config from {config_file}")
    
    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides.

        Only the first underscore after the section separates nesting, so
        ``CRYPTO_CHART_CACHE_CLEANUP_INTERVAL`` sets ``cache.cleanup_interval``.
        """
        prefix = f"{self.env_prefix}_"
        
        for key, value in os.environ.items():
            if key.startswith(prefix):
                config_key = key[len(prefix):].lower().replace('_', '.', 1)
                self._set_nested_value(self._config, config_key, value)
                logger.debug(f"Applied env override: {config_key}")
    
    def _merge_config(self, target: Dict[str, Any], source: Dict[str, Any]) -> None:
        """Recursively merge configuration dictionaries."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._merge_config(target[key], value)
            else:
                target[key] = value
    
    def _set_nested_value(self, config: Dict[str, Any], key_path: str, value: Any) -> None:
        """Set a nested configuration value using dot notation."""
        keys = key_path.split('.')
        current = config
        
        for key in keys[:-1]:
            if not isinstance(current.get(key), dict):
                current[key] = {}
            current = current[key]
        
        current[keys[-1]] = self._convert_value(value)
    
    def _convert_value(self, value: Any) -> Any:
        """Convert string value to appropriate type."""
        if not isinstance(value, str):
            return value

        if value.lower() in ('true', 'false'):
            return value.lower() == 'true'

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        return value
    
    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value using dot notation."""
        if not self._loaded:
            raise ConfigError("Configuration not loaded")
        
        current = self._config
        for k in key.split('.'):
            if isinstance(current, dict) and k in current:
                current = current[k]
            else:
                return default
        
        return current
    
    def set(self, key: str, value: Any) -> None:
        """Set a configuration value using dot notation."""
        self._set_nested_value(self._config, key, value)
    
    def get_all(self) -> Dict[str, Any]:
        """Get a copy of the full configuration."""
        if not self._loaded:
            raise ConfigError("Configuration not loaded")
        return copy.deepcopy(self._config)
    
    def has(self, key: str) -> bool:
        """Check if a configuration key exists."""
        if not self._loaded:
            return False

        current = self._config
        for k in key.split('.'):
            if isinstance(current, dict) and k in current:
                current = current[k]
            else:
                return False

        return True
