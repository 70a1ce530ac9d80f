"""
Bottle Manifest & State Models
Desired state (manifest), observed state (state record) and version ordering
"""

from bottle_manager.manifest.bottle import (
    AgentsMdSpec,
    BottleManifest,
    CustomToolSpec,
    McpServerSpec,
)
from bottle_manager.manifest.state import (
    BottleState,
    CustomInstallMethod,
    CustomToolRecord,
    InstallMethod,
    IntegrationRecord,
    Mode,
    ToolRecord,
)
from bottle_manager.manifest.tool import ToolDefinition, ToolType
from bottle_manager.manifest.version import Ordering, compare_versions

__all__ = [
    'AgentsMdSpec',
    'BottleManifest',
    'CustomToolSpec',
    'McpServerSpec',
    'BottleState',
    'CustomInstallMethod',
    'CustomToolRecord',
    'InstallMethod',
    'IntegrationRecord',
    'Mode',
    'ToolRecord',
    'ToolDefinition',
    'ToolType',
    'Ordering',
    'compare_versions',
]
