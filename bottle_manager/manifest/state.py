#!/usr/bin/env python3
"""
Bottle State Model
Observed state: which bottle is installed, in which mode, and what it installed
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List


class Mode(Enum):
    """Reconciliation mode of an installed bottle"""
    MANAGED = "managed"
    EJECTED = "ejected"


class InstallMethod(Enum):
    """How a curated tool was installed"""
    CARGO = "cargo"
    BREW = "brew"
    MCP = "mcp"

    @property
    def is_unregisterable(self) -> bool:
        """Registrations can be undone safely; shared global binaries cannot"""
        return self is InstallMethod.MCP


class CustomInstallMethod(Enum):
    """How a custom (bespoke) tool was installed"""
    BREW = "brew"
    CARGO = "cargo"
    NPM = "npm"
    BINARY = "binary"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if not value:
        return utc_now()
    # Older records use the "Z" suffix, which fromisoformat only accepts on 3.11+
    text = str(value)
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    return datetime.fromisoformat(text)


def _format_timestamp(value: datetime) -> str:
    return value.isoformat()


@dataclass
class ToolRecord:
    """An installed curated tool"""
    version: str
    installed_at: datetime
    method: InstallMethod

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ToolRecord':
        return cls(
            version=str(data['version']),
            installed_at=_parse_timestamp(data.get('installed_at')),
            method=InstallMethod(data['method']),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'version': self.version,
            'installed_at': _format_timestamp(self.installed_at),
            'method': self.method.value,
        }


@dataclass
class CustomToolRecord:
    """An installed custom tool from a bespoke bottle"""
    version: str
    installed_at: datetime
    method: CustomInstallMethod

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CustomToolRecord':
        return cls(
            version=str(data['version']),
            installed_at=_parse_timestamp(data.get('installed_at')),
            method=CustomInstallMethod(data['method']),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'version': self.version,
            'installed_at': _format_timestamp(self.installed_at),
            'method': self.method.value,
        }


@dataclass
class IntegrationRecord:
    """A platform integration (Claude Code, OpenCode, Codex)"""
    installed_at: datetime

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'IntegrationRecord':
        return cls(installed_at=_parse_timestamp(data.get('installed_at')))

    def to_dict(self) -> Dict[str, Any]:
        return {'installed_at': _format_timestamp(self.installed_at)}


def _name_list(data: Dict[str, Any], key: str) -> List[Any]:
    value = data.get(key) or []
    if not isinstance(value, list):
        raise TypeError(f"'{key}' must be a list")
    return value


@dataclass
class BottleState:
    """
    Persisted record of an installed bottle.

    `integrations`, `custom_tools`, `plugins` and `mcp_servers` were added after
    the first release; records written before that load with them empty.
    """
    bottle: str
    bottle_version: str
    installed_at: datetime = field(default_factory=utc_now)
    mode: Mode = Mode.MANAGED
    tools: Dict[str, ToolRecord] = field(default_factory=dict)
    custom_tools: Dict[str, CustomToolRecord] = field(default_factory=dict)
    integrations: Dict[str, IntegrationRecord] = field(default_factory=dict)
    # Plugins and bespoke MCP servers applied from the manifest
    plugins: List[str] = field(default_factory=list)
    mcp_servers: List[str] = field(default_factory=list)

    @property
    def is_managed(self) -> bool:
        return self.mode is Mode.MANAGED

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BottleState':
        """
        Build a state from its JSON form.

        Raises:
            KeyError, ValueError, TypeError: record is malformed
        """
        return cls(
            bottle=str(data['bottle']),
            bottle_version=str(data['bottle_version']),
            installed_at=_parse_timestamp(data.get('installed_at')),
            mode=Mode(data.get('mode', Mode.MANAGED.value)),
            tools={
                name: ToolRecord.from_dict(record)
                for name, record in (data.get('tools') or {}).items()
            },
            custom_tools={
                name: CustomToolRecord.from_dict(record)
                for name, record in (data.get('custom_tools') or {}).items()
            },
            integrations={
                name: IntegrationRecord.from_dict(record)
                for name, record in (data.get('integrations') or {}).items()
            },
            plugins=[str(p) for p in _name_list(data, 'plugins')],
            mcp_servers=[str(s) for s in _name_list(data, 'mcp_servers')],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'bottle': self.bottle,
            'bottle_version': self.bottle_version,
            'installed_at': _format_timestamp(self.installed_at),
            'mode': self.mode.value,
            'tools': {name: record.to_dict() for name, record in sorted(self.tools.items())},
            'custom_tools': {
                name: record.to_dict() for name, record in sorted(self.custom_tools.items())
            },
            'integrations': {
                name: record.to_dict() for name, record in sorted(self.integrations.items())
            },
            'plugins': sorted(self.plugins),
            'mcp_servers': sorted(self.mcp_servers),
        }
