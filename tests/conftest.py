"""
Shared fixtures for bottle tests

Fakes stand in for the package managers, the registry and the claude CLI so
no test touches the network or installs anything.
"""
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set

import pytest

from bottle_manager.core.engine import BottleEngine
from bottle_manager.core.store import MemoryStateStore
from bottle_manager.errors import BottleNotFound, InstallError, ToolNotFound
from bottle_manager.manifest.bottle import BottleManifest, CustomToolSpec, McpServerSpec
from bottle_manager.manifest.state import (
    BottleState,
    CustomInstallMethod,
    InstallMethod,
    ToolRecord,
)
from bottle_manager.manifest.tool import ToolDefinition, ToolType
from bottle_manager.platform.fetch import ManifestSource, ToolDefinitionSource
from bottle_manager.platform.installer import Installer


EARLIER = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeInstaller(Installer):
    """Records every call; names in `fail` raise InstallError"""

    def __init__(self, method: InstallMethod = InstallMethod.CARGO):
        self.method = method
        self.fail: Set[str] = set()
        self.fail_unregister: Set[str] = set()
        self.installed: List[tuple] = []
        self.unregistered: List[str] = []
        self.custom: List[tuple] = []
        self.verified: List[tuple] = []
        self.mcp_servers: List[str] = []
        self.plugins: List[str] = []

    def install(self, definition, version):
        if definition.name in self.fail:
            raise InstallError(definition.name, "cargo install exited with code 101")
        self.installed.append((definition.name, version))
        if definition.tool_type is ToolType.MCP:
            return InstallMethod.MCP
        return self.method

    def unregister(self, tool):
        if tool in self.fail_unregister:
            raise InstallError(tool, "claude mcp remove exited with code 1")
        self.unregistered.append(tool)

    def install_custom(self, name, spec):
        if name in self.fail:
            raise InstallError(name, "no install method available")
        self.custom.append((name, spec.version))
        return next(iter(spec.install))

    def verify(self, name, command):
        self.verified.append((name, command))

    def register_mcp_server(self, name, spec):
        if name in self.fail:
            raise InstallError(name, "claude mcp add exited with code 1")
        self.mcp_servers.append(name)

    def install_plugin(self, plugin):
        if plugin in self.fail:
            raise InstallError(plugin, "claude plugin install exited with code 1")
        self.plugins.append(plugin)


class FakeToolSource(ToolDefinitionSource):
    """Every tool resolves to a binary definition unless listed in `mcp` or `missing`"""

    def __init__(self, mcp: Optional[Set[str]] = None, missing: Optional[Set[str]] = None):
        self.mcp = mcp or set()
        self.missing = missing or set()

    def fetch(self, tool):
        if tool in self.missing:
            raise ToolNotFound(tool)
        tool_type = ToolType.MCP if tool in self.mcp else ToolType.BINARY
        return ToolDefinition(name=tool, tool_type=tool_type, package=tool)


class FakeManifestSource(ManifestSource):
    def __init__(self, manifests: Optional[Dict[str, BottleManifest]] = None):
        self.manifests = dict(manifests or {})

    def add(self, manifest: BottleManifest) -> None:
        self.manifests[manifest.name] = manifest

    def fetch(self, bottle):
        try:
            return self.manifests[bottle]
        except KeyError:
            raise BottleNotFound(bottle) from None


def make_manifest(name: str = 'stable', version: str = '2025.01.01',
                  tools: Optional[Dict[str, str]] = None, **kwargs) -> BottleManifest:
    return BottleManifest(name=name, version=version, description=f"{name} bottle",
                          tools=dict(tools or {}), **kwargs)


def make_state(bottle: str = 'stable', version: str = '2025.01.01',
               tools: Optional[Dict[str, str]] = None,
               method: InstallMethod = InstallMethod.CARGO, **kwargs) -> BottleState:
    records = {
        name: ToolRecord(version=v, installed_at=EARLIER, method=method)
        for name, v in (tools or {}).items()
    }
    return BottleState(bottle=bottle, bottle_version=version, installed_at=EARLIER,
                       tools=records, **kwargs)


def custom_spec(version: str = '1.0.0', verify: Optional[str] = None) -> CustomToolSpec:
    return CustomToolSpec(version=version, install={CustomInstallMethod.BREW: 'acme/tap/tool'},
                          verify=verify)


def mcp_server(env: Optional[Dict[str, str]] = None) -> McpServerSpec:
    return McpServerSpec(command='npx', args=['-y', 'server-pkg'], env=dict(env or {}))


@pytest.fixture
def installer():
    return FakeInstaller()


@pytest.fixture
def tool_source():
    return FakeToolSource()


@pytest.fixture
def manifests():
    return FakeManifestSource()


@pytest.fixture
def store():
    return MemoryStateStore()


@pytest.fixture
def engine(store, manifests, tool_source, installer):
    """Engine over fakes; prerequisites always pass"""
    return BottleEngine(store, manifests, tool_source, installer,
                        prerequisites=lambda manifest: None)
