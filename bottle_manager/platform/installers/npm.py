#!/usr/bin/env python3
"""
Bottle npm Installer
Installs global npm packages
"""

import platform
from typing import List

from bottle_manager.platform.installers.base import BaseInstaller, is_unpinned


class NpmInstaller(BaseInstaller):
    """Cross-platform npm installer"""

    def __init__(self, retry_on_failure: int = 1, quiet_mode: bool = False):
        # Windows: npm.cmd bypasses PowerShell execution policy issues
        npm_cmd = 'npm.cmd' if platform.system() == 'Windows' else 'npm'
        super().__init__(npm_cmd, retry_on_failure, quiet_mode)
        self.npm_cmd = npm_cmd

    def build_install_command(self, package: str, version: str) -> List[str]:
        spec = package if is_unpinned(version) else f"{package}@{version}"
        cmd = [self.npm_cmd, 'install', '-g', spec]
        if self.quiet_mode:
            cmd.append('--silent')
        return cmd
