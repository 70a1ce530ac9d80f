#!/usr/bin/env python3
"""
Bottle Catalog
Bespoke bottle creation, bottle listing and manifest validation (curator checks)
"""

import json
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, List, Optional, Tuple

from bottle_manager.errors import BottleError, BottleNotFound, ValidationError
from bottle_manager.manifest.bottle import NAME_PATTERN, BottleManifest
from bottle_manager.manifest.version import looks_like_semver
from bottle_manager.platform.fetch import BespokeManifestSource, ManifestSource


UNAVAILABLE_DESCRIPTION = "(unable to fetch description)"


def validate_bottle_name(name: str) -> None:
    if not name:
        raise ValidationError("Bottle name cannot be empty")
    if not NAME_PATTERN.fullmatch(name):
        raise ValidationError(
            "Bottle name can only contain alphanumeric characters, hyphens, and underscores"
        )


def create_bespoke(bespoke: BespokeManifestSource, name: str,
                   source: Optional[ManifestSource] = None,
                   from_bottle: Optional[str] = None,
                   today: Optional[date] = None) -> Tuple[Path, BottleManifest]:
    """
    Create <home>/bottles/<name>/manifest.json.

    Args:
        bespoke: Bespoke manifest directory
        name: New bottle name
        source: Where `from_bottle` is looked up (curated and bespoke)
        from_bottle: Copy tools, plugins and servers from this bottle
        today: Version date override

    Returns:
        (manifest path, manifest)
    """
    validate_bottle_name(name)
    if bespoke.exists(name):
        raise ValidationError(f"Bespoke bottle '{name}' already exists")

    version = (today or date.today()).strftime('%Y.%m.%d')

    if from_bottle:
        if source is None:
            raise BottleError("No manifest source to copy from")
        try:
            base = source.fetch(from_bottle)
        except BottleNotFound:
            raise BottleNotFound(
                f"{from_bottle} (checked curated and bespoke)"
            ) from None
        manifest = BottleManifest(
            name=name,
            version=version,
            description=f"Custom bottle based on {from_bottle}",
            tools=dict(base.tools),
            plugins=list(base.plugins),
            mcp_servers=dict(base.mcp_servers),
            custom_tools=dict(base.custom_tools),
            prerequisites=dict(base.prerequisites),
            opencode_plugins=dict(base.opencode_plugins),
            agents_md=base.agents_md,
        )
    else:
        manifest = BottleManifest(name=name, version=version, description="My custom tool versions")

    return bespoke.write(manifest), manifest


def list_bottles(curated: List[str], remote: ManifestSource,
                 bespoke: BespokeManifestSource) -> Tuple[List[Tuple[str, str]], List[Tuple[str, str]]]:
    """
    Returns:
        (curated [(name, description)], bespoke [(name, description)]), each sorted
    """
    curated_rows = []
    for name in curated:
        try:
            description = remote.fetch(name).description
        except BottleError:
            description = UNAVAILABLE_DESCRIPTION
        curated_rows.append((name, description))

    bespoke_rows = []
    for name in bespoke.names():
        try:
            description = bespoke.fetch(name).description
        except BottleError:
            description = "(invalid manifest)"
        bespoke_rows.append((name, description))

    return sorted(curated_rows), bespoke_rows


@dataclass
class ValidationReport:
    bottle: str
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def _check_schema(manifest: Any, report: ValidationReport) -> None:
    for required in ('name', 'version', 'description', 'tools'):
        if required not in manifest:
            report.errors.append(f"Missing required field: {required}")

    if 'tools' in manifest and not isinstance(manifest['tools'], dict):
        report.errors.append("'tools' must be an object")
    if 'plugins' in manifest and not isinstance(manifest['plugins'], list):
        report.errors.append("'plugins' must be an array")


def _check_tool_definitions(manifest: Any, tools_dir: Path, report: ValidationReport) -> None:
    tools = manifest.get('tools')
    if not isinstance(tools, dict):
        return
    for tool_name in sorted(tools):
        if not (tools_dir / f"{tool_name}.json").exists():
            report.errors.append(f"Tool '{tool_name}' has no definition at tools/{tool_name}.json")


def _check_version_format(manifest: Any, report: ValidationReport) -> None:
    tools = manifest.get('tools')
    if not isinstance(tools, dict):
        return
    for tool_name, version in sorted(tools.items()):
        if isinstance(version, str) and not looks_like_semver(version):
            report.warnings.append(
                f"Tool '{tool_name}' version '{version}' doesn't look like semver (x.y.z)"
            )


def _check_duplicate_plugins(manifest: Any, report: ValidationReport) -> None:
    plugins = manifest.get('plugins')
    if not isinstance(plugins, list):
        return
    seen = set()
    for plugin in plugins:
        if plugin in seen:
            report.errors.append(f"Duplicate plugin: {plugin}")
        seen.add(plugin)


def validate_manifest(bottle: str, repo_root: Path) -> ValidationReport:
    """
    Validate bottles/<bottle>/manifest.json inside a bottle registry checkout.

    All checks run; the caller decides how to surface errors and warnings.
    """
    manifest_path = repo_root / 'bottles' / bottle / 'manifest.json'
    if not manifest_path.exists():
        raise BottleNotFound(
            f"{bottle} (no local manifest at bottles/{bottle}/manifest.json; run from the bottle repo root)"
        )
    try:
        with open(manifest_path, 'r', encoding='utf-8') as f:
            manifest = json.load(f)
    except json.JSONDecodeError as e:
        raise ValidationError(f"{manifest_path} is not valid JSON: {e}") from e

    report = ValidationReport(bottle)
    if not isinstance(manifest, dict):
        report.errors.append("Manifest must be a JSON object")
        return report

    _check_schema(manifest, report)
    _check_tool_definitions(manifest, repo_root / 'tools', report)
    _check_version_format(manifest, report)
    _check_duplicate_plugins(manifest, report)
    return report
