#!/usr/bin/env python3
"""
Bottle Cargo Installer
Installs Rust crates with `cargo install`
"""

from typing import List

from bottle_manager.platform.installers.base import BaseInstaller, is_unpinned


class CargoInstaller(BaseInstaller):
    """Cross-platform cargo installer"""

    def __init__(self, retry_on_failure: int = 1, quiet_mode: bool = False):
        super().__init__('cargo', retry_on_failure, quiet_mode)

    def build_install_command(self, package: str, version: str) -> List[str]:
        # Omitting the version makes cargo fetch the latest release
        spec = package if is_unpinned(version) else f"{package}@{version}"
        cmd = ['cargo', 'install', spec]
        if self.quiet_mode:
            cmd.append('--quiet')
        return cmd
