#!/usr/bin/env python3
"""
Bottle Plan Executor

Applies a ReconciliationPlan one item at a time. Every item is attempted; a
failure is recorded and the next item proceeds. The returned tool map holds
only what actually succeeded (plus prior records kept on failed version changes).
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from bottle_manager.errors import BottleError
from bottle_manager.manifest.bottle import CustomToolSpec, McpServerSpec
from bottle_manager.manifest.state import CustomToolRecord, ToolRecord, utc_now
from bottle_manager.platform.fetch import ToolDefinitionSource
from bottle_manager.platform.installer import Installer
from bottle_manager.platform.installers.mcp import missing_env_vars
from bottle_manager.core.plan import ReconciliationPlan


# (action, item name, detail, succeeded)
ProgressCallback = Callable[[str, str, str, bool], None]


@dataclass(frozen=True)
class ItemFailure:
    """One plan item that could not be applied"""
    name: str
    error: BottleError
    action: str = ''

    @property
    def message(self) -> str:
        return str(self.error)


@dataclass
class ExecutionResult:
    tools: Dict[str, ToolRecord] = field(default_factory=dict)
    failures: List[ItemFailure] = field(default_factory=list)
    # Tools no longer in the bottle that were left installed on disk
    kept_installed: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def _noop(action: str, name: str, detail: str, ok: bool) -> None:
    pass


class PlanExecutor:
    """
    Sequentially applies plans through an Installer.

    Args:
        installer: Performs installs and registrations
        tool_source: Resolves tool names to install definitions
        on_item: Called once per processed item, in order
    """

    def __init__(self, installer: Installer, tool_source: ToolDefinitionSource,
                 on_item: Optional[ProgressCallback] = None):
        self.installer = installer
        self.tool_source = tool_source
        self.on_item = on_item or _noop

    def _install_tool(self, name: str, version: str) -> ToolRecord:
        definition = self.tool_source.fetch(name)
        method = self.installer.install(definition, version)
        return ToolRecord(version=version, installed_at=utc_now(), method=method)

    def execute(self, current_tools: Mapping[str, ToolRecord],
                plan: ReconciliationPlan) -> ExecutionResult:
        """
        Apply `plan` on top of `current_tools`.

        Args:
            current_tools: Tool records of the state the plan was computed from
            plan: Output of calculate_plan

        Returns:
            ExecutionResult with the new tool map and per-item failures
        """
        result = ExecutionResult()

        for name, _version in plan.unchanged:
            result.tools[name] = current_tools[name]

        for name, version in plan.add:
            try:
                result.tools[name] = self._install_tool(name, version)
            except BottleError as e:
                result.failures.append(ItemFailure(name, e, 'add'))
                self.on_item('add', name, version, False)
            else:
                self.on_item('add', name, version, True)

        changes = [('upgrade', entry) for entry in plan.upgrade]
        changes += [('downgrade', entry) for entry in plan.downgrade]
        for action, (name, _old, new) in changes:
            try:
                result.tools[name] = self._install_tool(name, new)
            except BottleError as e:
                result.failures.append(ItemFailure(name, e, action))
                # Keep tracking the working prior version
                if name in current_tools:
                    result.tools[name] = current_tools[name]
                self.on_item(action, name, new, False)
            else:
                self.on_item(action, name, new, True)

        for name in plan.remove:
            prior = current_tools.get(name)
            if prior is not None and prior.method.is_unregisterable:
                try:
                    self.installer.unregister(name)
                except BottleError as e:
                    result.failures.append(ItemFailure(name, e, 'remove'))
                    self.on_item('remove', name, 'unregister', False)
                else:
                    self.on_item('remove', name, 'unregister', True)
            else:
                # Shared global binaries stay installed; only tracking is dropped
                result.kept_installed.append(name)
                self.on_item('remove', name, 'untracked', True)

        return result

    def install_custom_tools(self, specs: Mapping[str, CustomToolSpec],
                             current: Optional[Mapping[str, CustomToolRecord]] = None
                             ) -> Tuple[Dict[str, CustomToolRecord], List[ItemFailure]]:
        """
        Install custom tools, skipping those already recorded at the same version.

        Returns:
            (records for every custom tool now installed, failures)
        """
        current = current or {}
        records: Dict[str, CustomToolRecord] = {}
        failures: List[ItemFailure] = []

        for name in sorted(specs):
            spec = specs[name]
            prior = current.get(name)
            if prior is not None and prior.version == spec.version:
                records[name] = prior
                continue
            try:
                method = self.installer.install_custom(name, spec)
                if spec.verify:
                    self.installer.verify(name, spec.verify)
            except BottleError as e:
                failures.append(ItemFailure(name, e, 'custom'))
                if prior is not None:
                    records[name] = prior
                self.on_item('custom', name, spec.version, False)
                continue
            records[name] = CustomToolRecord(version=spec.version, installed_at=utc_now(), method=method)
            self.on_item('custom', name, spec.version, True)

        return records, failures

    def register_mcp_servers(self, servers: Mapping[str, McpServerSpec]) -> List[ItemFailure]:
        """Register bespoke MCP servers; servers with unset ${VAR}s are skipped as failures"""
        failures: List[ItemFailure] = []
        for name in sorted(servers):
            server = servers[name]
            missing = missing_env_vars(name, server)
            if missing:
                error = BottleError(
                    f"requires environment variables that are not set: {'; '.join(missing)}"
                )
                failures.append(ItemFailure(name, error, 'mcp'))
                self.on_item('mcp', name, server.scope, False)
                continue
            try:
                self.installer.register_mcp_server(name, server)
            except BottleError as e:
                failures.append(ItemFailure(name, e, 'mcp'))
                self.on_item('mcp', name, server.scope, False)
            else:
                self.on_item('mcp', name, server.scope, True)
        return failures

    def install_plugins(self, plugins: List[str]) -> List[ItemFailure]:
        failures: List[ItemFailure] = []
        for plugin in plugins:
            try:
                self.installer.install_plugin(plugin)
            except BottleError as e:
                failures.append(ItemFailure(plugin, e, 'plugin'))
                self.on_item('plugin', plugin, '', False)
            else:
                self.on_item('plugin', plugin, '', True)
        return failures
