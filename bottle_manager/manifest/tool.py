#!/usr/bin/env python3
"""
Bottle Tool Definitions
How a curated tool name maps to an installable package
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from bottle_manager.errors import ManifestError


class ToolType(Enum):
    """Curated tool kinds"""
    BINARY = "binary"
    MCP = "mcp"


@dataclass(frozen=True)
class ToolDefinition:
    """Tool definition document from the registry (tools/<name>.json)"""
    name: str
    tool_type: ToolType
    package: str
    registry: str = ''
    binary: Optional[str] = None
    install: Dict[str, str] = field(default_factory=dict)
    check: str = ''
    homepage: str = ''

    @property
    def binary_name(self) -> str:
        """Executable name on PATH (defaults to the tool name)"""
        return self.binary or self.name

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ToolDefinition':
        try:
            return cls(
                name=str(data['name']),
                tool_type=ToolType(data['type']),
                package=str(data['package']),
                registry=str(data.get('registry', '')),
                binary=data.get('binary'),
                install={str(k): str(v) for k, v in (data.get('install') or {}).items()},
                check=str(data.get('check', '')),
                homepage=str(data.get('homepage', '')),
            )
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise ManifestError(f"Invalid tool definition: {e}") from e
