#!/usr/bin/env python3
"""
Bottle Claude Code Integration
Installs and removes the bottle plugin through the `claude` CLI
"""

import subprocess
from typing import Dict, Optional

from bottle_manager.config import DEFAULT_MARKETPLACE
from bottle_manager.integrate.base import Integration, Platform
from bottle_manager.platform.installers.plugin import ClaudePluginInstaller


PLUGIN = 'bottle'


class ClaudeCodeIntegration(Integration):
    platform = Platform.CLAUDE_CODE
    detection_hint = '~/.claude/'
    install_action = f"Install the {PLUGIN} plugin from {DEFAULT_MARKETPLACE}"
    remove_action = f"Uninstall the {PLUGIN} plugin"

    def __init__(self, home=None, marketplace: str = DEFAULT_MARKETPLACE, claude_cmd: str = 'claude'):
        super().__init__(home)
        self.marketplace = marketplace
        self.claude_cmd = claude_cmd
        self.plugins = ClaudePluginInstaller(marketplace, claude_cmd)

    def is_detected(self) -> bool:
        return (self.home / '.claude').exists()

    def is_installed(self) -> bool:
        try:
            result = subprocess.run(
                [self.claude_cmd, 'plugin', 'list'],
                capture_output=True, text=True, check=False, shell=False
            )
        except OSError:
            return False
        return PLUGIN in result.stdout and self.marketplace in result.stdout

    def install(self, opencode_plugins: Optional[Dict[str, str]] = None) -> None:
        self.plugins.install(PLUGIN)

    def remove(self) -> None:
        self.plugins.uninstall(PLUGIN)
