#!/usr/bin/env python3
"""
Bottle AGENTS.md Snippet
Renders a bottle's documentation snippet for injection into AGENTS.md
"""

from typing import Optional

from bottle_manager.manifest.bottle import BottleManifest


def build_agents_md_snippet(manifest: BottleManifest) -> Optional[str]:
    """
    Render the manifest's agents_md descriptor.

    Sections are sorted by key. A section named after an item of the bottle
    gets that item's version in its heading.

    Returns:
        Markdown text, or None when the manifest has no agents_md block
    """
    spec = manifest.agents_md
    if spec is None:
        return None

    known = set(manifest.tools) | set(manifest.custom_tools) | set(manifest.mcp_servers)
    lines = [f"## {spec.title}", ""]
    for key in sorted(spec.sections):
        text = spec.sections[key].strip()
        if not text:
            continue
        if key in known:
            lines.append(f"### {key} ({_version_of(manifest, key)})")
        else:
            lines.append(f"### {key}")
        lines.append("")
        lines.append(text)
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"


def _version_of(manifest: BottleManifest, key: str) -> str:
    if key in manifest.tools:
        return manifest.tools[key]
    if key in manifest.custom_tools:
        return manifest.custom_tools[key].version
    return 'mcp'
