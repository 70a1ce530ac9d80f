#!/usr/bin/env python3
"""
Bottle Reconciliation Engine

Command flows (install, update, switch, eject, status) over injected
collaborators: a StateStore, a ManifestSource, a ToolDefinitionSource and an
Installer. Nothing here prints or exits; the CLI renders the returned outcomes.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from bottle_manager.core.agents_md import build_agents_md_snippet
from bottle_manager.core.executor import ExecutionResult, ItemFailure, PlanExecutor, ProgressCallback
from bottle_manager.core.plan import ReconciliationPlan, calculate_plan
from bottle_manager.core.store import StateStore
from bottle_manager.errors import (
    AlreadyEjected,
    BottleError,
    Cancelled,
    InvalidModeTransition,
    NoBottleInstalled,
    StateCorrupted,
)
from bottle_manager.manifest.bottle import BottleManifest
from bottle_manager.integrate.base import Integration, Platform
from bottle_manager.manifest.state import BottleState, IntegrationRecord, Mode, ToolRecord, utc_now
from bottle_manager.platform.detector import check_prerequisites
from bottle_manager.platform.fetch import ManifestSource, ToolDefinitionSource
from bottle_manager.platform.installer import Installer


class Outcome(Enum):
    """How a command finished"""
    APPLIED = "applied"
    ALREADY_INSTALLED = "already_installed"
    UP_TO_DATE = "up_to_date"
    DRY_RUN = "dry_run"
    NOT_INSTALLED = "not_installed"


# Asked before any mutation: (command, plan, target manifest) -> proceed?
ConfirmCallback = Callable[[str, ReconciliationPlan, BottleManifest], bool]


@dataclass
class CommandResult:
    """What a reconciling command did"""
    command: str
    outcome: Outcome
    bottle: str
    previous: Optional[BottleState] = None
    manifest: Optional[BottleManifest] = None
    plan: Optional[ReconciliationPlan] = None
    execution: Optional[ExecutionResult] = None
    state: Optional[BottleState] = None
    extra_failures: List[ItemFailure] = field(default_factory=list)

    @property
    def failures(self) -> List[ItemFailure]:
        failures = list(self.execution.failures) if self.execution else []
        return failures + list(self.extra_failures)


@dataclass
class IntegrationResult:
    platform: Platform
    outcome: Outcome
    state: BottleState
    # Installed in state but missing on disk; install repairs it
    incomplete: bool = False
    mcp_servers: List[str] = field(default_factory=list)


@dataclass
class StatusReport:
    state: Optional[BottleState]
    presence: Dict[str, bool] = field(default_factory=dict)
    latest: Optional[BottleManifest] = None
    plan: Optional[ReconciliationPlan] = None
    update_error: Optional[str] = None
    corrupted: Optional[str] = None

    @property
    def update_available(self) -> bool:
        if self.state is None or self.latest is None:
            return False
        return self.latest.version != self.state.bottle_version or bool(self.plan and self.plan.has_changes)


def _always(command: str, plan: ReconciliationPlan, manifest: BottleManifest) -> bool:
    return True


class BottleEngine:
    """
    Reconciles installed tools against bottle manifests.

    Args:
        store: State persistence
        manifests: Resolves bottle names to manifests
        tools: Resolves tool names to install definitions
        installer: Performs installs and registrations
        confirm: Asked before mutating; returning False raises Cancelled
        on_item: Per-item progress callback forwarded to the executor
        prerequisites: Raises PrerequisitesNotMet for a manifest
        presence: (tool name, record) -> is the tool present on this machine
    """

    def __init__(self, store: StateStore, manifests: ManifestSource,
                 tools: ToolDefinitionSource, installer: Installer,
                 confirm: Optional[ConfirmCallback] = None,
                 on_item: Optional[ProgressCallback] = None,
                 prerequisites: Callable[[BottleManifest], None] = check_prerequisites,
                 presence: Optional[Callable[[str, ToolRecord], bool]] = None):
        self.store = store
        self.manifests = manifests
        self.tools = tools
        self.installer = installer
        self.confirm = confirm or _always
        self.prerequisites = prerequisites
        self.presence = presence
        self.executor = PlanExecutor(installer, tools, on_item)

    # -- helpers ---------------------------------------------------------

    def require_active(self) -> BottleState:
        """
        Raises:
            NoBottleInstalled: no active pointer or no record behind it
            StateCorrupted: the active record exists but cannot be parsed
        """
        name = self.store.active_bottle()
        if not name:
            raise NoBottleInstalled()
        state = self.store.load_for(name)
        if state is None:
            if self.store.is_corrupted(name):
                raise StateCorrupted(
                    f"State file for bottle '{name}' is corrupted. "
                    f"Run 'bottle install {name}' to rebuild it."
                )
            raise NoBottleInstalled()
        return state

    def _confirm(self, command: str, plan: ReconciliationPlan, manifest: BottleManifest) -> None:
        if not self.confirm(command, plan, manifest):
            raise Cancelled()

    def _save_snippet(self, manifest: BottleManifest) -> None:
        snippet = build_agents_md_snippet(manifest)
        if snippet is not None:
            self.store.save_snippet(manifest.name, snippet)

    def _apply_extras(self, manifest: BottleManifest, previous: Optional[BottleState],
                      result: CommandResult) -> Tuple[List[str], List[str]]:
        """
        Register the manifest's MCP servers and install its plugins, skipping
        those `previous` already applied.

        Returns:
            (plugins, mcp_servers) applied from the manifest after this run
        """
        had_plugins = set(previous.plugins) if previous is not None else set()
        had_servers = set(previous.mcp_servers) if previous is not None else set()

        server_failures = self.executor.register_mcp_servers({
            name: spec for name, spec in manifest.mcp_servers.items() if name not in had_servers
        })
        plugin_failures = self.executor.install_plugins(
            [plugin for plugin in manifest.plugins if plugin not in had_plugins]
        )
        result.extra_failures.extend(server_failures + plugin_failures)

        failed_servers = {failure.name for failure in server_failures}
        failed_plugins = {failure.name for failure in plugin_failures}
        plugins = sorted(set(
            plugin for plugin in manifest.plugins
            if plugin in had_plugins or plugin not in failed_plugins
        ))
        servers = sorted(
            name for name in manifest.mcp_servers
            if name in had_servers or name not in failed_servers
        )
        return plugins, servers

    # -- commands --------------------------------------------------------

    def install(self, bottle: str, manifest: Optional[BottleManifest] = None,
                dry_run: bool = False) -> CommandResult:
        """
        Install a bottle from scratch.

        An ejected active bottle does not block install; this is the way back
        to managed mode. A different managed bottle must be switched instead.
        """
        active = self.store.load_active()
        if active is not None and active.is_managed:
            if active.bottle == bottle:
                return CommandResult('install', Outcome.ALREADY_INSTALLED, bottle,
                                     previous=active, state=active)
            raise BottleError(
                f"Bottle '{active.bottle}' is currently installed. "
                f"Use 'bottle switch {bottle}' to change bottles."
            )

        if manifest is None:
            manifest = self.manifests.fetch(bottle)
        self.prerequisites(manifest)

        plan = calculate_plan(None, manifest)
        result = CommandResult('install', Outcome.DRY_RUN, manifest.name,
                               previous=active, manifest=manifest, plan=plan)
        if dry_run:
            return result
        self._confirm('install', plan, manifest)

        result.execution = self.executor.execute({}, plan)
        custom_tools, custom_failures = self.executor.install_custom_tools(manifest.custom_tools)
        result.extra_failures.extend(custom_failures)
        plugins, mcp_servers = self._apply_extras(manifest, None, result)

        state = BottleState(
            bottle=manifest.name,
            bottle_version=manifest.version,
            installed_at=utc_now(),
            mode=Mode.MANAGED,
            tools=result.execution.tools,
            custom_tools=custom_tools,
            integrations=dict(active.integrations) if active is not None else {},
            plugins=plugins,
            mcp_servers=mcp_servers,
        )
        self.store.save(state)
        self._save_snippet(manifest)

        result.outcome = Outcome.APPLIED
        result.state = state
        return result

    def update(self, dry_run: bool = False) -> CommandResult:
        """Move the active bottle to the latest snapshot of the same manifest"""
        active = self.require_active()
        if not active.is_managed:
            raise InvalidModeTransition(
                "Cannot update while ejected. Use 'bottle install' to return to managed mode."
            )

        manifest = self.manifests.fetch(active.bottle)
        self.prerequisites(manifest)
        plan = calculate_plan(active, manifest)

        custom_changed = {
            name: spec.version for name, spec in manifest.custom_tools.items()
        } != {
            name: record.version for name, record in active.custom_tools.items()
        }
        extras_changed = (
            set(manifest.plugins) != set(active.plugins)
            or set(manifest.mcp_servers) != set(active.mcp_servers)
        )

        result = CommandResult('update', Outcome.UP_TO_DATE, active.bottle,
                               previous=active, manifest=manifest, plan=plan, state=active)
        if (not plan.has_changes and not custom_changed and not extras_changed
                and manifest.version == active.bottle_version):
            return result
        if dry_run:
            result.outcome = Outcome.DRY_RUN
            return result
        self._confirm('update', plan, manifest)

        if plan.has_changes:
            result.execution = self.executor.execute(active.tools, plan)
        else:
            result.execution = ExecutionResult(tools=dict(active.tools))
        custom_tools, custom_failures = self.executor.install_custom_tools(
            manifest.custom_tools, active.custom_tools
        )
        result.extra_failures.extend(custom_failures)
        plugins, mcp_servers = self._apply_extras(manifest, active, result)

        state = BottleState(
            bottle=active.bottle,
            bottle_version=manifest.version,
            installed_at=active.installed_at,
            mode=active.mode,
            tools=result.execution.tools,
            custom_tools=custom_tools,
            integrations=dict(active.integrations),
            plugins=plugins,
            mcp_servers=mcp_servers,
        )
        self.store.save(state)
        self._save_snippet(manifest)

        result.outcome = Outcome.APPLIED
        result.state = state
        return result

    def switch(self, bottle: str, dry_run: bool = False) -> CommandResult:
        """Reconcile the active bottle's tools to another bottle and make it active"""
        active = self.require_active()
        if active.bottle == bottle and active.is_managed:
            return CommandResult('switch', Outcome.ALREADY_INSTALLED, bottle,
                                 previous=active, state=active)
        if not active.is_managed:
            raise InvalidModeTransition(
                "Cannot switch while ejected. Use 'bottle install' to reinstall a managed bottle."
            )

        manifest = self.manifests.fetch(bottle)
        self.prerequisites(manifest)
        plan = calculate_plan(active, manifest)

        result = CommandResult('switch', Outcome.DRY_RUN, manifest.name,
                               previous=active, manifest=manifest, plan=plan)
        if dry_run:
            return result
        self._confirm('switch', plan, manifest)

        result.execution = self.executor.execute(active.tools, plan)
        plugins, mcp_servers = self._apply_extras(manifest, active, result)

        state = BottleState(
            bottle=manifest.name,
            bottle_version=manifest.version,
            installed_at=utc_now(),
            mode=Mode.MANAGED,
            tools=result.execution.tools,
            custom_tools=dict(active.custom_tools),
            integrations=dict(active.integrations),
            plugins=plugins,
            mcp_servers=mcp_servers,
        )
        self.store.save(state)
        self._save_snippet(manifest)

        result.outcome = Outcome.APPLIED
        result.state = state
        return result

    def eject(self, confirm: Optional[Callable[[BottleState], bool]] = None) -> BottleState:
        """Stop managing the active bottle; installed tools stay in place"""
        state = self.require_active()
        if state.mode is Mode.EJECTED:
            raise AlreadyEjected()
        if confirm is not None and not confirm(state):
            raise Cancelled()
        state.mode = Mode.EJECTED
        self.store.save(state)
        return state

    def status(self, check_updates: bool = False) -> StatusReport:
        name = self.store.active_bottle()
        state = self.store.load_for(name) if name else None
        if state is None:
            corrupted = name if name and self.store.is_corrupted(name) else None
            return StatusReport(state=None, corrupted=corrupted)

        report = StatusReport(state=state)
        if self.presence is not None:
            report.presence = {
                tool: self.presence(tool, record) for tool, record in sorted(state.tools.items())
            }

        if check_updates:
            try:
                report.latest = self.manifests.fetch(state.bottle)
            except BottleError as e:
                report.update_error = f"Could not fetch latest manifest for '{state.bottle}': {e}"
            else:
                report.plan = calculate_plan(state, report.latest)
        return report

    def snippet(self) -> Optional[str]:
        """AGENTS.md snippet stored for the active bottle"""
        state = self.require_active()
        return self.store.load_snippet(state.bottle)

    def add_integration(self, integration: Integration, dry_run: bool = False) -> IntegrationResult:
        """
        Install a platform integration and record it in the active state.

        OpenCode gets the bottle's pinned opencode_plugins and bespoke MCP
        servers when the manifest can be fetched; otherwise its defaults.
        """
        state = self.require_active()
        platform = integration.platform
        in_state = platform.key in state.integrations
        installed = integration.is_installed()

        result = IntegrationResult(platform, Outcome.DRY_RUN, state,
                                   incomplete=in_state and not installed)
        if in_state and installed:
            result.outcome = Outcome.ALREADY_INSTALLED
            return result
        if dry_run:
            return result

        opencode_plugins = None
        mcp_servers = {}
        if platform is Platform.OPENCODE:
            try:
                manifest = self.manifests.fetch(state.bottle)
            except BottleError:
                manifest = None
            if manifest is not None:
                opencode_plugins = manifest.opencode_plugins or None
                mcp_servers = manifest.mcp_servers

        integration.install(opencode_plugins)
        result.mcp_servers = integration.register_mcp_servers(mcp_servers)

        state.integrations[platform.key] = IntegrationRecord(installed_at=utc_now())
        self.store.save(state)
        result.outcome = Outcome.APPLIED
        return result

    def remove_integration(self, integration: Integration, dry_run: bool = False) -> IntegrationResult:
        state = self.require_active()
        platform = integration.platform
        result = IntegrationResult(platform, Outcome.DRY_RUN, state)
        if platform.key not in state.integrations:
            result.outcome = Outcome.NOT_INSTALLED
            return result
        if dry_run:
            return result

        integration.remove()
        del state.integrations[platform.key]
        self.store.save(state)
        result.outcome = Outcome.APPLIED
        return result
