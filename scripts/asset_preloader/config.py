"""
Configuration management for the asset preloader.
Supports TOML and JSON configuration files with validation.
"""

import os
import json
from dataclasses import dataclass, field

# Handle tomllib import for different Python versions
try:
    import tomllib  # Python 3.11+
except ImportError:
    import tomli as tomllib  # Python < 3.11 with tomli package
from typing import Dict, List, Optional, Any, Union
from pathlib import Path


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _read_document(path: Path) -> Dict[str, Any]:
    """Read a TOML or JSON document into a dictionary."""
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    suffix = path.suffix.lower()
    if suffix == '.toml':
        with open(path, 'rb') as f:
            return tomllib.load(f)
    elif suffix == '.json':
        with open(path, 'r') as f:
            return json.load(f)
    else:
        raise ValueError(f"Unsupported configuration format: {path.suffix}")


@dataclass
class PreloaderConfig:
    """Main configuration class for the asset preloader."""

    # Local paths and file:// URLs are resolved against this directory
    base_dir: str = "."

    # Scheduling
    max_upload_passes: int = 5

    # Network settings
    request_timeout: Optional[float] = None
    user_agent: str = "AssetPreloader/1.0"
    verify_ssl: bool = True

    # Logging
    log_level: str = "INFO"

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> "PreloaderConfig":
        """Load configuration from TOML or JSON file."""
        return cls._from_dict(_read_document(Path(config_path)))

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "PreloaderConfig":
        """Create configuration from dictionary."""
        config_data = {}

        if 'paths' in data:
            paths = data['paths']
            config_data['base_dir'] = paths.get('base_dir', '.')

        if 'scheduler' in data:
            scheduler = data['scheduler']
            config_data['max_upload_passes'] = scheduler.get('max_upload_passes', 5)

        if 'network' in data:
            network = data['network']
            config_data['request_timeout'] = network.get('request_timeout')
            config_data['user_agent'] = network.get('user_agent', 'AssetPreloader/1.0')
            config_data['verify_ssl'] = network.get('verify_ssl', True)

        if 'logging' in data:
            config_data['log_level'] = data['logging'].get('level', 'INFO')

        return cls(**config_data)

    @classmethod
    def default(cls) -> "PreloaderConfig":
        """Create default configuration with environment variable overrides."""
        return cls._apply_env_overrides(cls())

    @classmethod
    def from_env(cls) -> "PreloaderConfig":
        """Create configuration from environment variables only."""
        config = cls()
        return cls._apply_env_overrides(config)

    @classmethod
    def _apply_env_overrides(cls, config: "PreloaderConfig") -> "PreloaderConfig":
        """Apply environment variable overrides to configuration."""

        if os.getenv('ASSET_PRELOADER_BASE_DIR'):
            config.base_dir = os.getenv('ASSET_PRELOADER_BASE_DIR', '.')

        if os.getenv('ASSET_PRELOADER_MAX_UPLOAD_PASSES'):
            config.max_upload_passes = int(os.getenv('ASSET_PRELOADER_MAX_UPLOAD_PASSES', '5'))

        if os.getenv('ASSET_PRELOADER_REQUEST_TIMEOUT'):
            config.request_timeout = float(os.getenv('ASSET_PRELOADER_REQUEST_TIMEOUT', '0'))

        if os.getenv('ASSET_PRELOADER_USER_AGENT'):
            config.user_agent = os.getenv('ASSET_PRELOADER_USER_AGENT', 'AssetPreloader/1.0')

        if os.getenv('ASSET_PRELOADER_VERIFY_SSL'):
            config.verify_ssl = os.getenv('ASSET_PRELOADER_VERIFY_SSL', 'true').lower() == 'true'

        if os.getenv('ASSET_PRELOADER_LOG_LEVEL'):
            config.log_level = os.getenv('ASSET_PRELOADER_LOG_LEVEL', 'INFO').upper()

        return config

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors."""
        errors = []

        if self.max_upload_passes < 1:
            errors.append("max_upload_passes must be at least 1")

        if self.request_timeout is not None and self.request_timeout <= 0:
            errors.append("request_timeout must be positive when set")

        if not self.user_agent:
            errors.append("user_agent must not be empty")

        if self.log_level.upper() not in LOG_LEVELS:
            errors.append(f"log_level must be one of {', '.join(LOG_LEVELS)}")

        base = Path(self.base_dir)
        if base.exists() and not base.is_dir():
            errors.append(f"base_dir '{self.base_dir}' is not a directory")

        return errors


@dataclass
class PreloadManifest:
    """
    Batch of files to preload, grouped by loader type.

    Manifest files map a loader type name to a table of ``key = url`` pairs::

        [Image]
        hero = "sprites/hero.png"

        [TileMap]
        level1 = "maps/level1.tmj"
    """
    entries: Dict[str, Dict[str, str]] = field(default_factory=dict)

    @classmethod
    def from_file(cls, manifest_path: Union[str, Path]) -> "PreloadManifest":
        """Load a manifest from a TOML or JSON file."""
        return cls.from_dict(_read_document(Path(manifest_path)))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PreloadManifest":
        entries = {}
        for type_name, files in data.items():
            if not isinstance(files, dict):
                raise ValueError(f"Manifest section '{type_name}' must be a table of key = url pairs")
            entries[type_name] = {str(key): str(url) for key, url in files.items()}
        return cls(entries=entries)

    def __len__(self) -> int:
        return sum(len(files) for files in self.entries.values())

    def __iter__(self):
        for type_name, files in self.entries.items():
            for key, url in files.items():
                yield type_name, key, url
