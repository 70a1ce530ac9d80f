#!/usr/bin/env python3
"""
Bottle Plugin Installer
Installs Claude Code plugins from a marketplace
"""

import subprocess
from typing import List

from bottle_manager.errors import InstallError


class ClaudePluginInstaller:
    """Wraps `claude plugin install|uninstall <plugin>@<marketplace>`"""

    def __init__(self, marketplace: str, claude_cmd: str = 'claude'):
        self.marketplace = marketplace
        self.claude_cmd = claude_cmd

    def _run(self, plugin: str, args: List[str]) -> None:
        cmd = [self.claude_cmd] + args
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=False, shell=False)
        except OSError as e:
            raise InstallError(plugin, f"Failed to run claude {args[0]} {args[1]}: {e}") from e
        if result.returncode != 0:
            raise InstallError(
                plugin, f"claude {args[0]} {args[1]} exited with code {result.returncode}"
            )

    def install(self, plugin: str) -> None:
        self._run(plugin, ['plugin', 'install', f"{plugin}@{self.marketplace}"])

    def uninstall(self, plugin: str) -> None:
        self._run(plugin, ['plugin', 'uninstall', f"{plugin}@{self.marketplace}"])
