#!/usr/bin/env python3
"""
Bottle Manifest Model
Desired state: a named, versioned snapshot of pinned tools, plugins and MCP servers
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from bottle_manager.errors import ManifestError
from bottle_manager.manifest.state import CustomInstallMethod


MCP_SCOPES = ('user', 'project')

# Bottle, tool, custom tool and MCP server names; they become file and URL path parts
NAME_PATTERN = re.compile(r'[A-Za-z0-9_-]+')


def check_name(kind: str, name: Any) -> str:
    """
    Raises:
        ManifestError: name is empty or has characters outside [A-Za-z0-9_-]
    """
    if not isinstance(name, str) or not NAME_PATTERN.fullmatch(name):
        raise ManifestError(
            f"Invalid {kind} name '{name}': use only letters, digits, hyphens and underscores"
        )
    return name


def _section(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ManifestError(f"'{key}' must be an object")
    return value


@dataclass(frozen=True)
class McpServerSpec:
    """A bespoke MCP server registered with the agent host"""
    command: str
    args: List[str] = field(default_factory=list)
    env: Dict[str, str] = field(default_factory=dict)
    scope: str = 'user'

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> 'McpServerSpec':
        if not isinstance(data, dict) or 'command' not in data:
            raise ManifestError(f"MCP server '{name}' needs a 'command'")
        scope = data.get('scope', 'user')
        if scope not in MCP_SCOPES:
            raise ManifestError(f"MCP server '{name}' has invalid scope '{scope}' (use user or project)")
        args = data.get('args') or []
        if not isinstance(args, list):
            raise ManifestError(f"MCP server '{name}' 'args' must be an array")
        env = data.get('env') or {}
        if not isinstance(env, dict):
            raise ManifestError(f"MCP server '{name}' 'env' must be an object")
        return cls(
            command=str(data['command']),
            args=[str(a) for a in args],
            env={str(k): str(v) for k, v in env.items()},
            scope=scope,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'command': self.command,
            'args': list(self.args),
            'env': dict(self.env),
            'scope': self.scope,
        }


@dataclass(frozen=True)
class CustomToolSpec:
    """
    A tool outside the curated registry.

    `install` maps install method to package reference, in priority order; the
    first method available on this machine wins. For the binary method the
    reference is a download URL where "{version}" is substituted.
    """
    version: str
    install: Dict[CustomInstallMethod, str]
    verify: Optional[str] = None

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> 'CustomToolSpec':
        if not isinstance(data, dict) or 'version' not in data:
            raise ManifestError(f"Custom tool '{name}' needs a 'version'")
        install = {}
        for method, package in (data.get('install') or {}).items():
            try:
                install[CustomInstallMethod(method)] = str(package)
            except ValueError:
                raise ManifestError(
                    f"Custom tool '{name}' has unknown install method '{method}'"
                ) from None
        if not install:
            raise ManifestError(f"Custom tool '{name}' needs at least one install method")
        return cls(version=str(data['version']), install=install, verify=data.get('verify'))

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'version': self.version,
            'install': {method.value: package for method, package in self.install.items()},
        }
        if self.verify:
            data['verify'] = self.verify
        return data


@dataclass(frozen=True)
class AgentsMdSpec:
    """Snippet injected into a project's AGENTS.md"""
    title: str
    sections: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AgentsMdSpec':
        return cls(
            title=str(data.get('title', 'Tools')),
            sections={str(k): str(v) for k, v in (data.get('sections') or {}).items()},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {'title': self.title, 'sections': dict(self.sections)}


@dataclass(frozen=True)
class BottleManifest:
    """Bottle manifest - a curated snapshot of tool versions"""
    name: str
    version: str
    description: str = ''
    tools: Dict[str, str] = field(default_factory=dict)
    plugins: List[str] = field(default_factory=list)
    mcp_servers: Dict[str, McpServerSpec] = field(default_factory=dict)
    custom_tools: Dict[str, CustomToolSpec] = field(default_factory=dict)
    prerequisites: Dict[str, str] = field(default_factory=dict)
    opencode_plugins: Dict[str, str] = field(default_factory=dict)
    agents_md: Optional[AgentsMdSpec] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BottleManifest':
        """
        Parse a manifest document.

        Raises:
            ManifestError: a required field is missing or has the wrong shape
        """
        if not isinstance(data, dict):
            raise ManifestError("Manifest must be a JSON object")
        for required in ('name', 'version'):
            if required not in data:
                raise ManifestError(f"Manifest is missing required field: {required}")

        tools = data.get('tools', {})
        if not isinstance(tools, dict):
            raise ManifestError("'tools' must be an object")
        plugins = data.get('plugins', [])
        if not isinstance(plugins, list):
            raise ManifestError("'plugins' must be an array")

        agents_md = data.get('agents_md')

        return cls(
            name=str(data['name']),
            version=str(data['version']),
            description=str(data.get('description', '')),
            tools={check_name('tool', k): str(v) for k, v in tools.items()},
            plugins=[str(p) for p in plugins],
            mcp_servers={
                check_name('MCP server', name): McpServerSpec.from_dict(name, spec)
                for name, spec in _section(data, 'mcp_servers').items()
            },
            custom_tools={
                check_name('custom tool', name): CustomToolSpec.from_dict(name, spec)
                for name, spec in _section(data, 'custom_tools').items()
            },
            prerequisites={str(k): str(v) for k, v in (data.get('prerequisites') or {}).items()},
            opencode_plugins={
                str(k): str(v) for k, v in (data.get('opencode_plugins') or {}).items()
            },
            agents_md=AgentsMdSpec.from_dict(agents_md) if agents_md else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'name': self.name,
            'version': self.version,
            'description': self.description,
            'tools': dict(sorted(self.tools.items())),
            'plugins': list(self.plugins),
        }
        if self.mcp_servers:
            data['mcp_servers'] = {n: s.to_dict() for n, s in sorted(self.mcp_servers.items())}
        if self.custom_tools:
            data['custom_tools'] = {n: s.to_dict() for n, s in sorted(self.custom_tools.items())}
        data['prerequisites'] = dict(self.prerequisites)
        data['opencode_plugins'] = dict(self.opencode_plugins)
        if self.agents_md:
            data['agents_md'] = self.agents_md.to_dict()
        return data

    def tool_names(self) -> List[str]:
        return sorted(self.tools)
