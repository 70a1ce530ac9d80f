#!/usr/bin/env python3
"""
Bottle Configuration Management
Handles .bottle.yml / ~/.bottle/config.yml configuration files
"""

import os
import yaml
from pathlib import Path
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field


DEFAULT_REMOTE_BASE = "https://raw.githubusercontent.com/cloud-atlas-ai/bottle/main"
DEFAULT_MARKETPLACE = "cloud-atlas-ai/bottle"


@dataclass
class BottleConfig:
    """Bottle configuration structure"""

    # Store root: active pointer, per-bottle state, bespoke manifests
    home: str = "~/.bottle"

    # Remote registry of curated bottles and tool definitions
    remote_base_url: str = DEFAULT_REMOTE_BASE
    remote_timeout: int = 20
    curated_bottles: List[str] = field(default_factory=lambda: ["stable", "edge", "minimal"])

    # Local manifest that takes priority over bespoke and remote lookups
    manifest_override: Optional[str] = None
    # Local tool definitions directory (tools/<name>.json) used before the remote
    tools_dir: Optional[str] = None

    # Installer behaviour
    install_retry_on_failure: int = 1
    install_quiet_mode: bool = False

    # Claude Code plugin marketplace
    plugin_marketplace: str = DEFAULT_MARKETPLACE

    @property
    def home_path(self) -> Path:
        """Resolved store root (BOTTLE_HOME wins over the config file)"""
        return Path(os.environ.get('BOTTLE_HOME') or self.home).expanduser()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BottleConfig':
        """Create config from dictionary"""
        config = cls()

        config.home = data.get('home', config.home)
        config.manifest_override = data.get('manifest', config.manifest_override)
        config.tools_dir = data.get('tools_dir', config.tools_dir)

        remote = data.get('remote', {}) or {}
        config.remote_base_url = str(remote.get('base_url', config.remote_base_url)).rstrip('/')
        try:
            config.remote_timeout = max(1, int(remote.get('timeout', config.remote_timeout)))
        except (TypeError, ValueError):
            config.remote_timeout = 20
        config.curated_bottles = list(remote.get('curated', config.curated_bottles))

        install = data.get('install', {}) or {}
        retry_count = install.get('retry_on_failure', config.install_retry_on_failure)
        try:
            config.install_retry_on_failure = max(1, int(retry_count))
        except (TypeError, ValueError):
            config.install_retry_on_failure = 1
        config.install_quiet_mode = bool(install.get('quiet_mode', config.install_quiet_mode))

        plugins = data.get('plugins', {}) or {}
        config.plugin_marketplace = plugins.get('marketplace', config.plugin_marketplace)

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary for YAML export"""
        data: Dict[str, Any] = {
            'home': self.home,
            'remote': {
                'base_url': self.remote_base_url,
                'timeout': self.remote_timeout,
                'curated': list(self.curated_bottles),
            },
            'install': {
                'retry_on_failure': self.install_retry_on_failure,
                'quiet_mode': self.install_quiet_mode,
            },
            'plugins': {
                'marketplace': self.plugin_marketplace,
            },
        }
        if self.manifest_override:
            data['manifest'] = self.manifest_override
        if self.tools_dir:
            data['tools_dir'] = self.tools_dir
        return data


class ConfigManager:
    """Manage bottle configuration files"""

    DEFAULT_CONFIG_NAME = ".bottle.yml"

    @staticmethod
    def user_config_path() -> Path:
        return Path.home() / ".bottle" / "config.yml"

    @staticmethod
    def find_config(start_path: Path = None) -> Optional[Path]:
        """
        Find .bottle.yml by walking up directory tree, then ~/.bottle/config.yml

        Args:
            start_path: Starting directory (default: current directory)

        Returns:
            Path to the config file or None if not found
        """
        current = start_path or Path.cwd()

        while current != current.parent:
            config_file = current / ConfigManager.DEFAULT_CONFIG_NAME
            if config_file.exists():
                return config_file
            current = current.parent

        user_config = ConfigManager.user_config_path()
        if user_config.exists():
            return user_config

        return None

    @staticmethod
    def load_config(config_path: Path = None) -> BottleConfig:
        """
        Load configuration from YAML

        Args:
            config_path: Path to config file (default: search from current dir)

        Returns:
            BottleConfig object
        """
        if config_path is None:
            config_path = ConfigManager.find_config()

        if config_path is None or not config_path.exists():
            return BottleConfig()

        try:
            with open(config_path, 'r') as f:
                data = yaml.safe_load(f)

            if data is None:
                return BottleConfig()

            return BottleConfig.from_dict(data)

        except (OSError, yaml.YAMLError, AttributeError) as e:
            print(f"Warning: Failed to load config from {config_path}: {e}")
            return BottleConfig()

    @staticmethod
    def save_config(config: BottleConfig, config_path: Path) -> bool:
        """
        Save configuration to YAML

        Args:
            config: BottleConfig object
            config_path: Path where to save

        Returns:
            True if successful
        """
        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)

            with open(config_path, 'w') as f:
                yaml.dump(
                    config.to_dict(),
                    f,
                    default_flow_style=False,
                    sort_keys=False,
                    indent=2
                )

            return True

        except OSError as e:
            print(f"Error: Failed to save config to {config_path}: {e}")
            return False
