#!/usr/bin/env python3
"""
Bottle CLI
Command-line interface for installing and reconciling curated agent tool bottles
"""

import functools
import sys
from pathlib import Path
from typing import Dict, Optional, Tuple

import click
import yaml
from rich.console import Console

from bottle_manager import __version__
from bottle_manager.config import BottleConfig, ConfigManager
from bottle_manager.core.catalog import create_bespoke, list_bottles, validate_manifest
from bottle_manager.core.engine import BottleEngine, ConfirmCallback, Outcome
from bottle_manager.core.executor import ProgressCallback
from bottle_manager.core.reporter import (
    print_plan,
    print_result,
    print_status,
    progress_printer,
)
from bottle_manager.core.store import FileStateStore
from bottle_manager.errors import BottleError, Cancelled, ValidationError
from bottle_manager.integrate import (
    ConfigBackupManager,
    Integration,
    Platform,
    get_integrations,
)
from bottle_manager.manifest.state import BottleState
from bottle_manager.platform.detector import get_platform_info, is_tool_present
from bottle_manager.platform.fetch import (
    BespokeManifestSource,
    ChainedManifestSource,
    FileManifestSource,
    RemoteManifestSource,
    RemoteRegistry,
    build_manifest_source,
    build_tool_source,
)
from bottle_manager.platform.installer import SystemInstaller


console = Console()


def load_config() -> BottleConfig:
    return ConfigManager.load_config()


def build_engine(config: BottleConfig, confirm: Optional[ConfirmCallback] = None,
                 on_item: Optional[ProgressCallback] = None) -> BottleEngine:
    """Wire the engine to the real store, registry and package managers"""
    registry = RemoteRegistry(config.remote_base_url, config.remote_timeout)
    return BottleEngine(
        store=FileStateStore(config.home_path),
        manifests=build_manifest_source(config, registry),
        tools=build_tool_source(config, registry),
        installer=SystemInstaller(config),
        confirm=confirm,
        on_item=on_item,
        presence=is_tool_present,
    )


def catalog_sources(config: BottleConfig) -> Tuple[RemoteManifestSource, BespokeManifestSource]:
    registry = RemoteRegistry(config.remote_base_url, config.remote_timeout)
    return RemoteManifestSource(registry), BespokeManifestSource(config.home_path)


def build_integrations(config: BottleConfig) -> Dict[Platform, Integration]:
    backups = ConfigBackupManager(config.home_path / 'backups')
    return get_integrations(backups=backups, marketplace=config.plugin_marketplace)


def handle_errors(func):
    """Report BottleError as a one-line message and exit 1"""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Cancelled:
            console.print("[yellow]Cancelled. No changes made.[/yellow]")
            sys.exit(1)
        except BottleError as e:
            console.print(f"[red]❌ {e}[/red]")
            sys.exit(1)

    return wrapper


def make_confirm(yes: bool) -> ConfirmCallback:
    """Show the plan, then ask unless -y was given"""

    def confirm(command, plan, manifest):
        print_plan(console, plan, manifest,
                   title=f"{command.title()} {manifest.name} ({manifest.version})")
        if yes:
            return True
        return click.confirm("\nProceed?", default=True)

    return confirm


def _engine(yes: bool = False) -> BottleEngine:
    return build_engine(load_config(), confirm=make_confirm(yes), on_item=progress_printer(console))


def _print_dry_run(result) -> None:
    console.print("\n[bold yellow][DRY RUN][/bold yellow]")
    print_plan(console, result.plan, result.manifest,
               title=f"{result.command.title()} {result.manifest.name} ({result.manifest.version})")
    console.print("[dim]No changes made.[/dim]\n")


@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version and exit')
@click.pass_context
def main(ctx, version):
    """
    Bottle - curated agent tool stacks

    Installs a pinned set of CLI tools, MCP servers and plugins, and keeps
    them reconciled as the bottle moves forward.

    Examples:
        bottle install stable        # Install the stable bottle
        bottle status --check-updates
        bottle update                # Move to the latest snapshot
        bottle switch edge           # Reconcile to another bottle
    """
    if version:
        click.echo(f"bottle v{__version__}")
        ctx.exit(0)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@main.command()
@click.argument('bottle', default='stable')
@click.option('-y', '--yes', is_flag=True, help='Skip the confirmation prompt')
@click.option('--dry-run', is_flag=True, help='Show what would be installed')
@click.option('--manifest', 'manifest_path', type=click.Path(exists=True, dir_okay=False),
              help='Install from a local manifest file')
@handle_errors
def install(bottle, yes, dry_run, manifest_path):
    """Install a bottle from scratch."""
    engine = _engine(yes)
    manifest = None
    if manifest_path:
        manifest = FileManifestSource(Path(manifest_path)).load()
        bottle = manifest.name

    result = engine.install(bottle, manifest=manifest, dry_run=dry_run)

    if result.outcome is Outcome.ALREADY_INSTALLED:
        console.print(f"[yellow]Bottle '{bottle}' is already installed.[/yellow]")
        console.print("[dim]Run 'bottle update' to move to its latest snapshot.[/dim]")
        return
    if result.outcome is Outcome.DRY_RUN:
        _print_dry_run(result)
        return
    print_result(console, result)


@main.command()
@click.option('--check-updates', is_flag=True, help='Compare against the latest manifest')
@handle_errors
def status(check_updates):
    """Show the active bottle and its tools."""
    engine = build_engine(load_config())
    report = engine.status(check_updates=check_updates)

    if report.state is None:
        if report.corrupted:
            console.print(f"[red]❌ State for bottle '{report.corrupted}' is corrupted.[/red]")
            console.print(f"[dim]Run 'bottle install {report.corrupted}' to rebuild it.[/dim]")
        else:
            console.print("[yellow]No bottle installed.[/yellow]")
            console.print("[dim]Run 'bottle install' to get started.[/dim]")
        return
    print_status(console, report)


@main.command()
@click.option('-y', '--yes', is_flag=True, help='Skip the confirmation prompt')
@click.option('--dry-run', is_flag=True, help='Show what would change')
@handle_errors
def update(yes, dry_run):
    """Move the active bottle to its latest snapshot."""
    result = _engine(yes).update(dry_run=dry_run)

    if result.outcome is Outcome.UP_TO_DATE:
        state = result.state
        console.print(f"[green]✓ Bottle '{state.bottle}' is up to date ({state.bottle_version}).[/green]")
        return
    if result.outcome is Outcome.DRY_RUN:
        _print_dry_run(result)
        return
    print_result(console, result)


@main.command()
@click.argument('bottle')
@click.option('-y', '--yes', is_flag=True, help='Skip the confirmation prompt')
@click.option('--dry-run', is_flag=True, help='Show what would change')
@handle_errors
def switch(bottle, yes, dry_run):
    """Reconcile installed tools to another bottle."""
    result = _engine(yes).switch(bottle, dry_run=dry_run)

    if result.outcome is Outcome.ALREADY_INSTALLED:
        console.print(f"[yellow]Bottle '{bottle}' is already active.[/yellow]")
        return
    if result.outcome is Outcome.DRY_RUN:
        _print_dry_run(result)
        return
    print_result(console, result)


@main.command()
@click.option('-y', '--yes', is_flag=True, help='Skip the confirmation prompt')
@handle_errors
def eject(yes):
    """Stop managing tools; everything stays installed."""

    def confirm(state: BottleState) -> bool:
        console.print(f"Ejecting from bottle '{state.bottle}' ({state.bottle_version}).")
        console.print("[dim]Installed tools stay in place; update and switch are disabled.[/dim]")
        return yes or click.confirm("Proceed?", default=False)

    state = build_engine(load_config()).eject(confirm=confirm)
    console.print(f"[green]✓ Ejected from '{state.bottle}'.[/green]")
    console.print("[dim]Run 'bottle install' to return to managed mode.[/dim]")


@main.command()
@click.argument('platform', required=False,
                type=click.Choice([p.key for p in Platform]))
@click.option('--list', 'show_list', is_flag=True, help='Show available and installed integrations')
@click.option('--remove', is_flag=True, help='Remove the integration')
@click.option('--dry-run', is_flag=True, help='Show what would change')
@handle_errors
def integrate(platform, show_list, remove, dry_run):
    """Add or remove a platform integration (claude_code, opencode, codex)."""
    config = load_config()
    engine = build_engine(config)
    integrations = build_integrations(config)

    if show_list:
        state = engine.require_active()
        console.print("\n[bold]Platform Integrations:[/bold]\n")
        for integration in integrations.values():
            detection = integration.detect()
            if detection.platform.key in state.integrations:
                label = "[green]installed[/green]"
            elif detection.detected:
                label = "[yellow]available[/yellow]"
            else:
                label = "[dim]not found[/dim]"
            console.print(f"  {detection.platform.display_name:<12} {label} [dim]({detection.detection_hint})[/dim]")
        console.print("\n[dim]bottle integrate <platform>          Add integration[/dim]")
        console.print("[dim]bottle integrate --remove <platform> Remove integration[/dim]\n")
        return

    if platform is None:
        raise BottleError(
            "Platform required. Use 'bottle integrate claude_code', 'opencode', or 'codex'. "
            "Use 'bottle integrate --list' to see available integrations."
        )

    target = Platform.from_key(platform)
    integration = integrations[target]

    if remove:
        result = engine.remove_integration(integration, dry_run=dry_run)
        if result.outcome is Outcome.NOT_INSTALLED:
            console.print(f"[yellow]{target} integration is not installed.[/yellow]")
        elif result.outcome is Outcome.DRY_RUN:
            console.print("\n[bold yellow][DRY RUN][/bold yellow]")
            console.print(f"Would remove {target} integration: {integration.remove_action}")
            console.print("[dim]No changes made.[/dim]\n")
        else:
            console.print(f"[green]✓ {target} integration removed.[/green]")
        return

    if not dry_run and not integration.is_detected():
        console.print(
            f"[yellow]⚠ {target} not detected ({integration.detection_hint} not found). "
            "Installing anyway.[/yellow]"
        )

    result = engine.add_integration(integration, dry_run=dry_run)
    if result.outcome is Outcome.ALREADY_INSTALLED:
        console.print(f"[yellow]{target} integration is already installed.[/yellow]")
    elif result.outcome is Outcome.DRY_RUN:
        console.print("\n[bold yellow][DRY RUN][/bold yellow]")
        console.print(f"Would install {target} integration: {integration.install_action}")
        console.print("[dim]No changes made.[/dim]\n")
    else:
        if result.incomplete:
            console.print(f"[dim]{target} integration was incomplete; missing parts reinstalled.[/dim]")
        if result.mcp_servers:
            console.print(f"[dim]MCP servers written: {', '.join(result.mcp_servers)}[/dim]")
        console.print(f"[green]✓ {target} integration installed.[/green]")


@main.command('list')
@handle_errors
def list_command():
    """List curated and bespoke bottles."""
    config = load_config()
    remote, bespoke = catalog_sources(config)
    curated_rows, bespoke_rows = list_bottles(config.curated_bottles, remote, bespoke)

    console.print("\n[bold cyan]Curated bottles:[/bold cyan]")
    for name, description in curated_rows:
        console.print(f"  {name:<16} [dim]{description}[/dim]")

    console.print("\n[bold cyan]Bespoke bottles:[/bold cyan]")
    if not bespoke_rows:
        console.print("  [dim](none; create one with 'bottle create <name>')[/dim]")
    for name, description in bespoke_rows:
        console.print(f"  {name:<16} [dim]{description}[/dim]")
    console.print()


@main.command()
@click.argument('name')
@click.option('--from', 'from_bottle', help='Copy tools from an existing bottle')
@handle_errors
def create(name, from_bottle):
    """Create a bespoke bottle in ~/.bottle/bottles/NAME."""
    remote, bespoke = catalog_sources(load_config())
    path, manifest = create_bespoke(
        bespoke, name, source=ChainedManifestSource([bespoke, remote]), from_bottle=from_bottle
    )
    console.print(f"[green]✓ Created bespoke bottle '{name}' ({manifest.version})[/green]")
    console.print(f"[dim]Edit {path}, then run 'bottle install {name}'.[/dim]")


@main.command()
@click.argument('bottle')
@click.option('--root', type=click.Path(exists=True, file_okay=False), default='.',
              help='Bottle registry checkout (default: current directory)')
@handle_errors
def validate(bottle, root):
    """Validate a bottle manifest in a registry checkout."""
    report = validate_manifest(bottle, Path(root))

    for warning in report.warnings:
        console.print(f"[yellow]⚠ {warning}[/yellow]")
    for error in report.errors:
        console.print(f"[red]✗ {error}[/red]")

    if not report.ok:
        raise ValidationError(f"Bottle '{bottle}' has {len(report.errors)} validation error(s)")
    console.print(f"[green]✓ Bottle '{bottle}' is valid.[/green]")


@main.command('agents-md')
@handle_errors
def agents_md():
    """Print the AGENTS.md snippet for the active bottle."""
    snippet = build_engine(load_config()).snippet()
    if snippet is None:
        console.print("[dim]The active bottle has no AGENTS.md snippet.[/dim]")
        return
    click.echo(snippet, nl=False)


@main.command()
@click.option('--init', 'init_config', is_flag=True, help='Write the defaults to ~/.bottle/config.yml')
def config(init_config):
    """Show the effective configuration."""
    if init_config:
        path = ConfigManager.user_config_path()
        if path.exists():
            console.print(f"[yellow]{path} already exists.[/yellow]")
            return
        if ConfigManager.save_config(BottleConfig(), path):
            console.print(f"[green]✓ Wrote {path}[/green]")
        else:
            console.print(f"[red]❌ Failed to write {path}[/red]")
            sys.exit(1)
        return

    source = ConfigManager.find_config()
    effective = load_config()
    console.print(f"\n[bold cyan]Config file:[/bold cyan] {source or '(defaults)'}")
    console.print(f"[bold cyan]Home:[/bold cyan] {effective.home_path}")
    info = get_platform_info()
    managers = ", ".join(pm.value for pm in info.package_managers) or "none"
    console.print(f"[bold cyan]Platform:[/bold cyan] {info.os_name} {info.os_version} ({info.architecture})")
    console.print(f"[bold cyan]Package managers:[/bold cyan] {managers}\n")
    click.echo(yaml.safe_dump(effective.to_dict(), default_flow_style=False, sort_keys=False))


if __name__ == '__main__':
    main()
