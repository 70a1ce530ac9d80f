"""
Bottle Platform Integrations
Wires bottle into Claude Code, OpenCode and Codex
"""

from pathlib import Path
from typing import Dict, List, Optional

from bottle_manager.integrate.backup import ConfigBackupManager
from bottle_manager.integrate.base import DetectionResult, Integration, Platform
from bottle_manager.integrate.claude_code import ClaudeCodeIntegration
from bottle_manager.integrate.codex import CodexIntegration
from bottle_manager.integrate.opencode import OpenCodeIntegration


def get_integrations(home: Optional[Path] = None,
                     backups: Optional[ConfigBackupManager] = None,
                     marketplace: Optional[str] = None) -> Dict[Platform, Integration]:
    """One integration per platform, in display order"""
    claude_kwargs = {'marketplace': marketplace} if marketplace else {}
    return {
        Platform.CLAUDE_CODE: ClaudeCodeIntegration(home, **claude_kwargs),
        Platform.OPENCODE: OpenCodeIntegration(home, backups=backups),
        Platform.CODEX: CodexIntegration(home),
    }


def detect_platforms(integrations: Dict[Platform, Integration]) -> List[DetectionResult]:
    return [integration.detect() for integration in integrations.values()]


__all__ = [
    'ConfigBackupManager',
    'DetectionResult',
    'Integration',
    'Platform',
    'ClaudeCodeIntegration',
    'CodexIntegration',
    'OpenCodeIntegration',
    'get_integrations',
    'detect_platforms',
]
