"""
Bottle Platform Layer
Platform detection, manifest and tool definition sources, and installers
"""

from bottle_manager.platform.detector import (
    OSType,
    PackageManager,
    PlatformDetector,
    PlatformInfo,
    check_prerequisites,
    get_platform_info,
    is_tool_present,
)
from bottle_manager.platform.fetch import (
    ManifestSource,
    ToolDefinitionSource,
    build_manifest_source,
    build_tool_source,
)
from bottle_manager.platform.installer import Installer, SystemInstaller

__all__ = [
    'OSType',
    'PackageManager',
    'PlatformDetector',
    'PlatformInfo',
    'check_prerequisites',
    'get_platform_info',
    'is_tool_present',
    'ManifestSource',
    'ToolDefinitionSource',
    'build_manifest_source',
    'build_tool_source',
    'Installer',
    'SystemInstaller',
]
