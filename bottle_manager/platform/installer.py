#!/usr/bin/env python3
"""
Bottle Installer Capability

The reconciliation engine only talks to `Installer`. `SystemInstaller` is the
subprocess-backed implementation that dispatches to cargo, brew, npm, binary
downloads and the `claude` CLI.
"""

import shlex
import subprocess
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

from bottle_manager.config import BottleConfig
from bottle_manager.errors import InstallError
from bottle_manager.manifest.bottle import CustomToolSpec, McpServerSpec
from bottle_manager.manifest.state import CustomInstallMethod, InstallMethod
from bottle_manager.manifest.tool import ToolDefinition, ToolType
from bottle_manager.platform.installers.base import BaseInstaller
from bottle_manager.platform.installers.binary import BinaryInstaller
from bottle_manager.platform.installers.brew import HomebrewInstaller
from bottle_manager.platform.installers.cargo import CargoInstaller
from bottle_manager.platform.installers.mcp import McpRegistrar
from bottle_manager.platform.installers.npm import NpmInstaller
from bottle_manager.platform.installers.plugin import ClaudePluginInstaller


class Installer(ABC):
    """Performs the package-manager and registration work for one item at a time"""

    @abstractmethod
    def install(self, definition: ToolDefinition, version: str) -> InstallMethod:
        """
        Install a curated tool.

        Returns:
            The method actually used

        Raises:
            InstallError: the tool could not be installed
        """

    @abstractmethod
    def unregister(self, tool: str) -> None:
        """Undo a registration (MCP). Raises InstallError."""

    @abstractmethod
    def install_custom(self, name: str, spec: CustomToolSpec) -> CustomInstallMethod:
        """Install a custom tool with the first available method. Raises InstallError."""

    @abstractmethod
    def verify(self, name: str, command: str) -> None:
        """Run a verification command. Raises InstallError on failure."""

    @abstractmethod
    def register_mcp_server(self, name: str, spec: McpServerSpec) -> None:
        """Register a bespoke MCP server. Raises InstallError."""

    @abstractmethod
    def install_plugin(self, plugin: str) -> None:
        """Install an agent plugin. Raises InstallError."""


class SystemInstaller(Installer):
    """Installer backed by the package managers found on this machine"""

    def __init__(self, config: Optional[BottleConfig] = None):
        config = config or BottleConfig()
        retries = config.install_retry_on_failure
        quiet = config.install_quiet_mode

        self.cargo = CargoInstaller(retries, quiet)
        self.brew = HomebrewInstaller(retries, quiet)
        self.npm = NpmInstaller(retries, quiet)
        self.binary = BinaryInstaller()
        self.mcp = McpRegistrar()
        self.plugins = ClaudePluginInstaller(config.plugin_marketplace)

        # Binary tools: try cargo first, fall back to brew
        self.binary_strategies: List[Tuple[InstallMethod, BaseInstaller]] = [
            (InstallMethod.CARGO, self.cargo),
            (InstallMethod.BREW, self.brew),
        ]
        self.custom_strategies: Dict[CustomInstallMethod, BaseInstaller] = {
            CustomInstallMethod.BREW: self.brew,
            CustomInstallMethod.CARGO: self.cargo,
            CustomInstallMethod.NPM: self.npm,
        }

    def install(self, definition: ToolDefinition, version: str) -> InstallMethod:
        if definition.tool_type is ToolType.MCP:
            self.mcp.register(definition.name, definition.package, version)
            return InstallMethod.MCP

        for method, installer in self.binary_strategies:
            if installer.is_available():
                package = definition.install.get(method.value, definition.package)
                installer.install(package, version)
                return method

        raise InstallError(
            definition.name, "Neither cargo nor brew found. Install Rust or Homebrew."
        )

    def unregister(self, tool: str) -> None:
        self.mcp.unregister(tool)

    def install_custom(self, name: str, spec: CustomToolSpec) -> CustomInstallMethod:
        errors = []
        for method, package in spec.install.items():
            if method is CustomInstallMethod.BINARY:
                self.binary.install(name, package, spec.version)
                return method

            installer = self.custom_strategies[method]
            if not installer.is_available():
                errors.append(f"{method.value} not available")
                continue
            installer.install(package, spec.version)
            return method

        raise InstallError(name, "no install method available (" + ", ".join(errors) + ")")

    def verify(self, name: str, command: str) -> None:
        try:
            result = subprocess.run(
                shlex.split(command), capture_output=True, text=True, check=False, shell=False
            )
        except (OSError, ValueError) as e:
            raise InstallError(name, f"verification '{command}' could not run: {e}") from e
        if result.returncode != 0:
            raise InstallError(
                name, f"verification '{command}' exited with code {result.returncode}"
            )

    def register_mcp_server(self, name: str, spec: McpServerSpec) -> None:
        self.mcp.register_bespoke(name, spec)

    def install_plugin(self, plugin: str) -> None:
        self.plugins.install(plugin)
