#!/usr/bin/env python3
"""
Bottle Platform Integration Base
Common interface for agent platforms bottle can wire itself into
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from bottle_manager.manifest.bottle import McpServerSpec


class Platform(Enum):
    """Supported platform integrations"""
    CLAUDE_CODE = "claude_code"
    OPENCODE = "opencode"
    CODEX = "codex"

    @property
    def key(self) -> str:
        """Key under `integrations` in the bottle state"""
        return self.value

    @property
    def display_name(self) -> str:
        return {
            Platform.CLAUDE_CODE: "Claude Code",
            Platform.OPENCODE: "OpenCode",
            Platform.CODEX: "Codex",
        }[self]

    def __str__(self) -> str:
        return self.display_name

    @classmethod
    def from_key(cls, key: str) -> 'Platform':
        try:
            return cls(key)
        except ValueError:
            choices = ', '.join(p.key for p in cls)
            raise ValueError(f"Unknown platform '{key}' (choose from {choices})") from None


@dataclass
class DetectionResult:
    platform: Platform
    detected: bool
    detection_hint: str


class Integration(ABC):
    """
    One platform integration.

    Args:
        home: User home directory (overridable for tests)
    """

    platform: Platform
    detection_hint: str = ''
    install_action: str = ''
    remove_action: str = ''

    def __init__(self, home: Optional[Path] = None):
        self.home = Path(home) if home is not None else Path.home()

    @abstractmethod
    def is_detected(self) -> bool:
        """The platform appears to be present on this machine"""

    @abstractmethod
    def is_installed(self) -> bool:
        """The bottle integration is present in the platform's own config"""

    @abstractmethod
    def install(self, opencode_plugins: Optional[Dict[str, str]] = None) -> None:
        """
        Raises:
            InstallError: the integration could not be written
        """

    @abstractmethod
    def remove(self) -> None:
        pass

    def register_mcp_servers(self, servers: Mapping[str, McpServerSpec]) -> List[str]:
        """Platforms with their own MCP config write bespoke servers there"""
        return []

    def detect(self) -> DetectionResult:
        return DetectionResult(self.platform, self.is_detected(), self.detection_hint)
