#!/usr/bin/env python3
"""
Bottle OpenCode Integration

Adds and removes the bottle ecosystem plugins in opencode.json. The config is
resolved the way opencode itself does it: ./opencode.json in the current
directory first, then ~/.config/opencode/opencode.json.
"""

import json
import shutil
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from bottle_manager.errors import InstallError
from bottle_manager.integrate.backup import ConfigBackupManager
from bottle_manager.integrate.base import Integration, Platform
from bottle_manager.manifest.bottle import McpServerSpec
from bottle_manager.platform.installers.mcp import opencode_server_entry, validate_env_vars


# Used when the bottle pins no opencode_plugins versions
DEFAULT_PACKAGES = [
    "@cloud-atlas-ai/bottle",
    "ba-opencode",
    "wm-opencode",
    "superego-opencode",
]

SCHEMA_URL = "https://opencode.ai/config.json"

ITEM = "opencode integration"


def package_name(entry: str) -> str:
    """Strip a version suffix: '@scope/pkg@1.2' -> '@scope/pkg', 'pkg@1.2' -> 'pkg'"""
    at = entry.rfind('@')
    return entry[:at] if at > 0 else entry


class OpenCodeIntegration(Integration):
    """
    Args:
        home: User home directory
        cwd: Directory searched for a project-level opencode.json
        backups: Copies the config aside before it is rewritten
    """

    platform = Platform.OPENCODE
    detection_hint = 'opencode.json'
    install_action = "Add bottle ecosystem plugins to opencode.json (bottle, ba, wm, superego)"
    remove_action = "Remove bottle ecosystem plugins from opencode.json"

    def __init__(self, home: Optional[Path] = None, cwd: Optional[Path] = None,
                 backups: Optional[ConfigBackupManager] = None):
        super().__init__(home)
        self.cwd = Path(cwd) if cwd is not None else Path.cwd()
        self.backups = backups

    @property
    def global_config_path(self) -> Path:
        return self.home / '.config' / 'opencode' / 'opencode.json'

    def config_path(self) -> Optional[Path]:
        """Existing opencode.json, project first; None if neither exists"""
        for candidate in (self.cwd / 'opencode.json', self.global_config_path):
            if candidate.exists():
                return candidate
        return None

    def is_detected(self) -> bool:
        return (self.home / '.opencode').exists() or shutil.which('opencode') is not None

    def is_installed(self) -> bool:
        path = self.config_path()
        if path is None:
            return False
        try:
            config = self._read(path)
        except InstallError:
            return False
        plugins = config.get('plugin')
        if not isinstance(plugins, list):
            return False
        ours = set(DEFAULT_PACKAGES)
        return any(isinstance(p, str) and package_name(p) in ours for p in plugins)

    def _read(self, path: Path) -> Dict[str, Any]:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                config = json.load(f)
        except OSError as e:
            raise InstallError(ITEM, f"Failed to read opencode.json: {e}") from e
        except json.JSONDecodeError as e:
            raise InstallError(ITEM, f"Failed to parse opencode.json: {e}") from e
        if not isinstance(config, dict):
            raise InstallError(ITEM, "opencode.json is not an object")
        return config

    def _load_or_new(self) -> Tuple[Path, Dict[str, Any]]:
        path = self.config_path()
        if path is None:
            return self.global_config_path, {'$schema': SCHEMA_URL}
        return path, self._read(path)

    def _write(self, path: Path, config: Dict[str, Any]) -> None:
        if self.backups is not None:
            self.backups.backup_file(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(config, indent=2) + '\n', encoding='utf-8')
        except OSError as e:
            raise InstallError(ITEM, f"Failed to write opencode.json: {e}") from e

    def install(self, opencode_plugins: Optional[Dict[str, str]] = None) -> None:
        """
        Add the ecosystem packages, replacing any existing entry for the same package.

        Args:
            opencode_plugins: package -> version pins from the bottle manifest
        """
        path, config = self._load_or_new()
        plugins = config.setdefault('plugin', [])
        if not isinstance(plugins, list):
            raise InstallError(ITEM, "plugin field is not an array")

        if opencode_plugins:
            packages = [f"{name}@{version}" for name, version in sorted(opencode_plugins.items())]
        else:
            packages = list(DEFAULT_PACKAGES)

        for package in packages:
            name = package_name(package)
            plugins[:] = [
                p for p in plugins if not (isinstance(p, str) and package_name(p) == name)
            ]
            plugins.append(package)

        self._write(path, config)

    def register_mcp_servers(self, servers: Mapping[str, McpServerSpec]) -> List[str]:
        """
        Write bespoke MCP servers into the `mcp` section of opencode.json.

        Raises:
            ValidationError: a server references unset environment variables
        """
        if not servers:
            return []
        for name in sorted(servers):
            validate_env_vars(name, servers[name])

        path, config = self._load_or_new()
        section = config.setdefault('mcp', {})
        if not isinstance(section, dict):
            raise InstallError(ITEM, "mcp field is not an object")
        for name in sorted(servers):
            section[name] = opencode_server_entry(servers[name])
        self._write(path, config)
        return sorted(servers)

    def remove(self) -> None:
        path = self.config_path()
        if path is None:
            return
        config = self._read(path)
        plugins = config.get('plugin')
        if not isinstance(plugins, list):
            return
        ours = set(DEFAULT_PACKAGES)
        config['plugin'] = [
            p for p in plugins if not (isinstance(p, str) and package_name(p) in ours)
        ]
        self._write(path, config)
