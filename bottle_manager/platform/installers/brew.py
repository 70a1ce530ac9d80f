#!/usr/bin/env python3
"""
Bottle Homebrew Installer
Package installer for macOS/Linux using Homebrew
"""

from typing import List

from bottle_manager.platform.installers.base import BaseInstaller


class HomebrewInstaller(BaseInstaller):
    """Package installer using Homebrew"""

    def __init__(self, retry_on_failure: int = 1, quiet_mode: bool = False):
        super().__init__('brew', retry_on_failure, quiet_mode)

    def build_install_command(self, package: str, version: str) -> List[str]:
        # Homebrew has no general way to pin a formula version; the formula's
        # current release is installed and the bottle version is only recorded.
        cmd = ['brew', 'install', package]
        if self.quiet_mode:
            cmd.append('--quiet')
        return cmd
