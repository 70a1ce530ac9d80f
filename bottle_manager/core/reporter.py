#!/usr/bin/env python3
"""
Bottle Console Reporter
Renders plans, per-item progress, failures and status with rich
"""

from typing import List, Optional

from rich.console import Console
from rich.table import Table

from bottle_manager.core.engine import CommandResult, StatusReport
from bottle_manager.core.executor import ItemFailure, ProgressCallback
from bottle_manager.core.plan import ReconciliationPlan
from bottle_manager.manifest.bottle import BottleManifest


ACTION_LABELS = {
    'add': 'Installing',
    'upgrade': 'Upgrading',
    'downgrade': 'Downgrading',
    'remove': 'Removing',
    'custom': 'Installing custom tool',
    'mcp': 'Registering MCP server',
    'plugin': 'Installing plugin',
}


def print_plan(console: Console, plan: ReconciliationPlan,
               manifest: Optional[BottleManifest] = None, title: str = "Plan") -> None:
    """Render a reconciliation plan as a table of changes"""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Change", style="cyan")
    table.add_column("Tool", style="magenta")
    table.add_column("Version", style="green")

    for name, version in plan.add:
        table.add_row("[green]+ add[/green]", name, version)
    for name, old, new in plan.upgrade:
        table.add_row("[cyan]↑ upgrade[/cyan]", name, f"{old} → {new}")
    for name, old, new in plan.downgrade:
        table.add_row("[yellow]↓ downgrade[/yellow]", name, f"{old} → {new}")
    for name in plan.remove:
        table.add_row("[red]- remove[/red]", name, "")

    if plan.has_changes:
        console.print(table)
    else:
        console.print("[dim]No tool changes.[/dim]")

    if plan.unchanged:
        console.print(f"[dim]{len(plan.unchanged)} tool(s) unchanged[/dim]")

    if manifest is not None:
        extras = []
        if manifest.custom_tools:
            extras.append(f"{len(manifest.custom_tools)} custom tool(s)")
        if manifest.mcp_servers:
            extras.append(f"{len(manifest.mcp_servers)} MCP server(s)")
        if manifest.plugins:
            extras.append(f"{len(manifest.plugins)} plugin(s)")
        if extras:
            console.print(f"[dim]Also: {', '.join(extras)}[/dim]")


def progress_printer(console: Console) -> ProgressCallback:
    """Per-item progress lines for the plan executor"""

    def on_item(action: str, name: str, detail: str, ok: bool) -> None:
        label = ACTION_LABELS.get(action, action)
        if action == 'remove' and detail == 'untracked':
            console.print(f"  [dim]- {name} no longer tracked (left installed)[/dim]")
            return
        suffix = f" {detail}" if detail and action != 'remove' else ""
        if ok:
            console.print(f"  [green]✓[/green] {label} {name}{suffix}")
        else:
            console.print(f"  [red]✗[/red] {label} {name}{suffix}")

    return on_item


def print_failures(console: Console, failures: List[ItemFailure]) -> None:
    if not failures:
        return
    console.print(f"\n[bold yellow]⚠ {len(failures)} item(s) failed:[/bold yellow]")
    for failure in failures:
        console.print(f"  • [yellow]{failure.name}[/yellow]: {failure.message}")


def print_result(console: Console, result: CommandResult) -> None:
    """Closing summary for install, update and switch"""
    state = result.state
    if result.failures:
        print_failures(console, result.failures)
        console.print(
            f"\n[yellow]Bottle '{state.bottle}' {state.bottle_version} applied with errors.[/yellow] "
            "[dim]Re-run the command to retry failed items.[/dim]"
        )
    else:
        console.print(f"\n[green]✅ Bottle '{state.bottle}' {state.bottle_version} is ready.[/green]")

    kept = result.execution.kept_installed if result.execution else []
    if kept:
        console.print(
            f"[dim]No longer tracked but still installed: {', '.join(kept)}[/dim]"
        )


def print_status(console: Console, report: StatusReport) -> None:
    state = report.state
    console.print(f"\n[bold cyan]Bottle:[/bold cyan] {state.bottle} ({state.bottle_version})")
    console.print(f"[bold cyan]Mode:[/bold cyan] {state.mode.value}")
    console.print(f"[dim]Installed: {state.installed_at.strftime('%Y-%m-%d %H:%M UTC')}[/dim]\n")

    table = Table(title="Tools", show_header=True, header_style="bold cyan")
    table.add_column("Tool", style="magenta")
    table.add_column("Version", style="green")
    table.add_column("Method", style="cyan")
    table.add_column("Status")

    for name, record in sorted(state.tools.items()):
        present = report.presence.get(name)
        if present is None:
            status = "[dim]unknown[/dim]"
        elif present:
            status = "[green]✓ present[/green]"
        else:
            status = "[red]✗ missing[/red]"
        table.add_row(name, record.version, record.method.value, status)
    console.print(table)

    if state.custom_tools:
        console.print("\n[bold]Custom tools:[/bold]")
        for name, record in sorted(state.custom_tools.items()):
            console.print(f"  • {name} {record.version} [dim]({record.method.value})[/dim]")

    if state.integrations:
        console.print("\n[bold]Integrations:[/bold]")
        for key in sorted(state.integrations):
            console.print(f"  • {key}")

    if not state.is_managed:
        console.print("\n[yellow]Ejected: bottle no longer manages these tools.[/yellow]")
        console.print("[dim]Run 'bottle install' to return to managed mode.[/dim]")

    if report.update_error:
        console.print(f"\n[yellow]⚠ {report.update_error}[/yellow]")
    elif report.latest is not None:
        if report.update_available:
            console.print(
                f"\n[cyan]Update available:[/cyan] {state.bottle_version} → {report.latest.version}"
            )
            print_plan(console, report.plan, title="Pending changes")
            console.print("[dim]Run 'bottle update' to apply.[/dim]")
        else:
            console.print("\n[green]✓ Up to date[/green]")
