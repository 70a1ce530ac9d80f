"""
Bottle Package Manager Installers
cargo, Homebrew, npm, direct binary downloads and the claude CLI
"""

from bottle_manager.platform.installers.base import BaseInstaller
from bottle_manager.platform.installers.binary import BinaryInstaller
from bottle_manager.platform.installers.brew import HomebrewInstaller
from bottle_manager.platform.installers.cargo import CargoInstaller
from bottle_manager.platform.installers.mcp import McpRegistrar
from bottle_manager.platform.installers.npm import NpmInstaller
from bottle_manager.platform.installers.plugin import ClaudePluginInstaller

__all__ = [
    'BaseInstaller',
    'BinaryInstaller',
    'HomebrewInstaller',
    'CargoInstaller',
    'McpRegistrar',
    'NpmInstaller',
    'ClaudePluginInstaller',
]
