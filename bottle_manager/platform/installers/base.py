#!/usr/bin/env python3
"""
Bottle Base Installer Class
Base class for package-manager backed installers
"""

from abc import ABC, abstractmethod
from typing import List, Optional
import subprocess
import shutil
import time

from bottle_manager.errors import InstallError


class BaseInstaller(ABC):
    """
    Abstract base class for a single package manager (cargo, brew, npm, ...)
    """

    def __init__(self, package_manager: str, retry_on_failure: int = 1, quiet_mode: bool = False):
        self.package_manager = package_manager
        self.retry_on_failure = max(1, int(retry_on_failure))
        self.quiet_mode = quiet_mode

    @property
    def pm_path(self) -> Optional[str]:
        return shutil.which(self.package_manager)

    def is_available(self) -> bool:
        """Check if the package manager binary is on PATH"""
        return self.pm_path is not None

    @abstractmethod
    def build_install_command(self, package: str, version: str) -> List[str]:
        """
        Build the install command

        Args:
            package: Package name for this package manager
            version: Pinned version ('' or 'latest' for unpinned)

        Returns:
            Command and arguments
        """
        pass

    def install(self, package: str, version: str) -> None:
        """
        Install a package at a pinned version

        Raises:
            InstallError: package manager missing or the install command failed
        """
        if not self.is_available():
            raise InstallError(package, f"{self.package_manager} not found on PATH")

        cmd = self.build_install_command(package, version)
        try:
            result = self.run_install_with_retries(cmd)
        except OSError as e:
            raise InstallError(package, f"Failed to run {self.package_manager}: {e}") from e

        if result.returncode != 0:
            detail = (result.stderr or '').strip()[:200]
            reason = f"{self.package_manager} install exited with code {result.returncode}"
            raise InstallError(package, f"{reason}: {detail}" if detail else reason)

    def run_command(self, cmd: List[str], check: bool = True) -> subprocess.CompletedProcess:
        """
        Run a command and return result

        Args:
            cmd: Command and arguments
            check: Whether to raise on error

        Returns:
            CompletedProcess result
        """
        return subprocess.run(cmd, capture_output=True, text=True, check=check, shell=False)

    def run_install_with_retries(self, cmd: List[str]) -> subprocess.CompletedProcess:
        """
        Run installer command with configured retry count.

        Args:
            cmd: Command and arguments

        Returns:
            Last subprocess result (or successful one)
        """
        last_result: Optional[subprocess.CompletedProcess] = None

        for attempt in range(self.retry_on_failure):
            result = self.run_command(cmd, check=False)
            if result.returncode == 0:
                return result
            last_result = result
            if attempt < self.retry_on_failure - 1:
                time.sleep(1)

        if last_result is not None:
            return last_result
        return subprocess.CompletedProcess(cmd, 1, '', 'installer command did not execute')


def is_unpinned(version: str) -> bool:
    return not version or version == 'latest'
