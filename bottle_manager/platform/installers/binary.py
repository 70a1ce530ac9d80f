#!/usr/bin/env python3
"""
Bottle Binary Installer
Downloads a prebuilt executable into a bin directory on the user's PATH
"""

import stat
from pathlib import Path
from typing import Optional

import requests

from bottle_manager.errors import InstallError


class BinaryInstaller:
    """Installs single-file executables from a download URL"""

    def __init__(self, bin_dir: Optional[Path] = None, timeout: int = 60):
        self.bin_dir = bin_dir or Path.home() / '.local' / 'bin'
        self.timeout = timeout

    def is_available(self) -> bool:
        """Downloads need nothing but network access"""
        return True

    def install(self, name: str, url_template: str, version: str) -> Path:
        """
        Download `url_template` (with {version} substituted) to <bin_dir>/<name>

        Returns:
            Path of the installed executable

        Raises:
            InstallError: download failed
        """
        url = url_template.replace('{version}', version)
        try:
            response = requests.get(url, timeout=self.timeout, headers={'User-Agent': 'bottle'})
            response.raise_for_status()
        except requests.RequestException as e:
            raise InstallError(name, f"Failed to download {url}: {e}") from e

        target = self.bin_dir / name
        try:
            self.bin_dir.mkdir(parents=True, exist_ok=True)
            target.write_bytes(response.content)
            mode = target.stat().st_mode
            target.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        except OSError as e:
            raise InstallError(name, f"Failed to write {target}: {e}") from e
        return target
