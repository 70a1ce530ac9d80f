#!/usr/bin/env python3
"""
Bottle Platform Detection
Detects operating system, package managers and prerequisite binaries
"""

import platform
import shutil
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from bottle_manager.errors import PrerequisitesNotMet
from bottle_manager.manifest.bottle import BottleManifest
from bottle_manager.manifest.state import InstallMethod, ToolRecord
from bottle_manager.platform.installers.mcp import McpRegistrar


class OSType(Enum):
    """Operating system types"""
    LINUX = "linux"
    MACOS = "macos"
    WINDOWS = "windows"
    UNKNOWN = "unknown"


class PackageManager(Enum):
    """Package managers and host CLIs bottle can drive"""
    CARGO = "cargo"          # Rust (cross-platform)
    BREW = "brew"            # macOS/Linux Homebrew
    NPM = "npm"              # Node.js (cross-platform)
    NODE = "node"            # Runtime for npx-launched MCP servers
    CLAUDE = "claude"        # Claude Code CLI (MCP + plugins)


# Prerequisite key in a manifest -> install hint
PREREQUISITE_HINTS: Dict[str, str] = {
    'cargo': 'cargo (install Rust: https://rustup.rs)',
    'node': 'node (install Node.js: https://nodejs.org)',
    'brew': 'brew (install Homebrew: https://brew.sh)',
    'npm': 'npm (install Node.js: https://nodejs.org)',
    'claude': 'claude (install Claude Code: https://claude.com/claude-code)',
}


@dataclass
class PlatformInfo:
    """Detected platform details"""
    os_type: OSType
    os_name: str
    os_version: str
    architecture: str
    package_managers: List[PackageManager]
    python_version: str


class PlatformDetector:
    """
    Detect platform details: OS and available package managers
    """

    def __init__(self):
        self.info: Optional[PlatformInfo] = None

    def detect(self) -> PlatformInfo:
        self.info = PlatformInfo(
            os_type=self._detect_os(),
            os_name=platform.system(),
            os_version=platform.release(),
            architecture=platform.machine(),
            package_managers=self._detect_package_managers(),
            python_version=platform.python_version(),
        )
        return self.info

    def _detect_os(self) -> OSType:
        system = platform.system().lower()

        if system == 'linux':
            return OSType.LINUX
        elif system == 'darwin':
            return OSType.MACOS
        elif system == 'windows':
            return OSType.WINDOWS
        else:
            return OSType.UNKNOWN

    def _detect_package_managers(self) -> List[PackageManager]:
        return [pm for pm in PackageManager if shutil.which(pm.value)]


def missing_prerequisites(manifest: BottleManifest) -> List[str]:
    """
    List the manifest's prerequisites that are not on PATH.

    Unknown prerequisite keys are checked as plain binary names.
    """
    missing = []
    for key in sorted(manifest.prerequisites):
        if shutil.which(key) is None:
            missing.append(PREREQUISITE_HINTS.get(key, key))
    return missing


def check_prerequisites(manifest: BottleManifest) -> None:
    """
    Raises:
        PrerequisitesNotMet: a required binary is missing
    """
    missing = missing_prerequisites(manifest)
    if missing:
        raise PrerequisitesNotMet(missing)


# Global detector instance
_detector: Optional[PlatformDetector] = None


def get_platform_info() -> PlatformInfo:
    """Get cached platform information"""
    global _detector
    if _detector is None or _detector.info is None:
        _detector = PlatformDetector()
        _detector.detect()
    return _detector.info


# Tool name -> binary name, where they differ
BINARY_ALIASES: Dict[str, str] = {
    'superego': 'sg',
    'datasphere': 'ds',
}


def is_tool_present(name: str, record: ToolRecord,
                    registrar: Optional[McpRegistrar] = None) -> bool:
    """
    Check whether a tracked tool is actually present on this machine.

    MCP tools are looked up in `claude mcp list`; everything else on PATH.
    """
    if record.method is InstallMethod.MCP:
        return (registrar or McpRegistrar()).is_registered(name)
    return shutil.which(BINARY_ALIASES.get(name, name)) is not None
