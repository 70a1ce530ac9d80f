#!/usr/bin/env python3
"""
Bottle Manifest & Tool Definition Sources

Manifests resolve from a local override path, then the bespoke directory
(~/.bottle/bottles/<name>/manifest.json), then the remote registry.
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, List, Optional

import requests

from bottle_manager.config import BottleConfig
from bottle_manager.errors import BottleError, BottleNotFound, ManifestError, NotFound, ToolNotFound
from bottle_manager.manifest.bottle import BottleManifest
from bottle_manager.manifest.tool import ToolDefinition


def _read_json(path: Path) -> Any:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ManifestError(f"Failed to parse {path}: {e}") from e
    except OSError as e:
        raise BottleError(f"Failed to read {path}: {e}") from e


class ManifestSource(ABC):
    """Resolves a bottle name to its manifest"""

    @abstractmethod
    def fetch(self, bottle: str) -> BottleManifest:
        """
        Raises:
            BottleNotFound: no manifest for this name
        """


class ToolDefinitionSource(ABC):
    """Resolves a tool name to its definition"""

    @abstractmethod
    def fetch(self, tool: str) -> ToolDefinition:
        """
        Raises:
            ToolNotFound: no definition for this name
        """


class RemoteRegistry:
    """HTTP access to the curated registry (bottles/ and tools/)"""

    def __init__(self, base_url: str, timeout: int = 20, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_json(self, path: str, not_found: BottleError) -> Any:
        url = f"{self.base_url}/{path}"
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise BottleError(f"Failed to fetch {url}: {e}") from e
        if response.status_code == 404:
            raise not_found
        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            raise BottleError(f"Failed to fetch {url}: {e}") from e
        try:
            return response.json()
        except ValueError as e:
            raise ManifestError(f"Failed to parse {url}: {e}") from e


class RemoteManifestSource(ManifestSource):
    def __init__(self, registry: RemoteRegistry):
        self.registry = registry

    def fetch(self, bottle: str) -> BottleManifest:
        data = self.registry.get_json(f"bottles/{bottle}/manifest.json", BottleNotFound(bottle))
        return BottleManifest.from_dict(data)


class FileManifestSource(ManifestSource):
    """A single manifest file, matched only when its name is requested"""

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()

    def load(self) -> BottleManifest:
        if not self.path.exists():
            raise BottleNotFound(str(self.path))
        return BottleManifest.from_dict(_read_json(self.path))

    def fetch(self, bottle: str) -> BottleManifest:
        if not self.path.exists():
            raise BottleNotFound(bottle)
        manifest = self.load()
        if manifest.name != bottle:
            raise BottleNotFound(bottle)
        return manifest


class BespokeManifestSource(ManifestSource):
    """User-maintained manifests under <home>/bottles/<name>/manifest.json"""

    def __init__(self, home: Path):
        self.bottles_dir = Path(home) / 'bottles'

    def manifest_path(self, bottle: str) -> Path:
        return self.bottles_dir / bottle / 'manifest.json'

    def exists(self, bottle: str) -> bool:
        return self.manifest_path(bottle).exists()

    def fetch(self, bottle: str) -> BottleManifest:
        path = self.manifest_path(bottle)
        if not path.exists():
            raise BottleNotFound(bottle)
        return BottleManifest.from_dict(_read_json(path))

    def names(self) -> List[str]:
        """Bespoke bottle names found on disk, sorted"""
        if not self.bottles_dir.is_dir():
            return []
        return sorted(
            entry.name for entry in self.bottles_dir.iterdir()
            if entry.is_dir() and (entry / 'manifest.json').exists()
        )

    def write(self, manifest: BottleManifest) -> Path:
        path = self.manifest_path(manifest.name)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(manifest.to_dict(), f, indent=2)
            f.write('\n')
        return path


class ChainedManifestSource(ManifestSource):
    """Try each source in priority order; the first hit wins"""

    def __init__(self, sources: List[ManifestSource]):
        self.sources = sources

    def fetch(self, bottle: str) -> BottleManifest:
        for source in self.sources:
            try:
                return source.fetch(bottle)
            except NotFound:
                continue
        raise BottleNotFound(bottle)


class RemoteToolSource(ToolDefinitionSource):
    def __init__(self, registry: RemoteRegistry):
        self.registry = registry

    def fetch(self, tool: str) -> ToolDefinition:
        data = self.registry.get_json(f"tools/{tool}.json", ToolNotFound(tool))
        return ToolDefinition.from_dict(data)


class LocalToolSource(ToolDefinitionSource):
    """Tool definitions in a local directory (<dir>/<name>.json)"""

    def __init__(self, tools_dir: Path):
        self.tools_dir = Path(tools_dir).expanduser()

    def fetch(self, tool: str) -> ToolDefinition:
        path = self.tools_dir / f"{tool}.json"
        if not path.exists():
            raise ToolNotFound(tool)
        return ToolDefinition.from_dict(_read_json(path))


class ChainedToolSource(ToolDefinitionSource):
    def __init__(self, sources: List[ToolDefinitionSource]):
        self.sources = sources

    def fetch(self, tool: str) -> ToolDefinition:
        for source in self.sources:
            try:
                return source.fetch(tool)
            except NotFound:
                continue
        raise ToolNotFound(tool)


def build_manifest_source(config: BottleConfig, registry: RemoteRegistry,
                          override: Optional[Path] = None) -> ChainedManifestSource:
    """Local override, then bespoke, then remote"""
    sources: List[ManifestSource] = []
    override = override or (Path(config.manifest_override) if config.manifest_override else None)
    if override is not None:
        sources.append(FileManifestSource(override))
    sources.append(BespokeManifestSource(config.home_path))
    sources.append(RemoteManifestSource(registry))
    return ChainedManifestSource(sources)


def build_tool_source(config: BottleConfig, registry: RemoteRegistry) -> ChainedToolSource:
    sources: List[ToolDefinitionSource] = []
    if config.tools_dir:
        sources.append(LocalToolSource(Path(config.tools_dir)))
    sources.append(RemoteToolSource(registry))
    return ChainedToolSource(sources)
