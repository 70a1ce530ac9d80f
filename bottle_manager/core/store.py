#!/usr/bin/env python3
"""
Bottle State Store

Two layers resolve bottle identity:
  <home>/active                          name of the active bottle
  <home>/bottles/<name>/state.json       that bottle's state record
  <home>/bottles/<name>/agents-md-snippet

Several bottles can keep state on disk; only the one named by `active` is live.
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

from bottle_manager.errors import StoreError
from bottle_manager.manifest.state import BottleState


class StateStore(ABC):
    """Durable, switchable persistence for bottle state"""

    @abstractmethod
    def active_bottle(self) -> Optional[str]:
        """Name held by the active pointer, or None"""

    @abstractmethod
    def load_for(self, bottle: str) -> Optional[BottleState]:
        """State for one bottle; absent and unparsable records both return None"""

    @abstractmethod
    def _write_record(self, state: BottleState) -> None:
        """Persist the record without touching the active pointer"""

    @abstractmethod
    def set_active(self, bottle: str) -> None:
        pass

    @abstractmethod
    def save_snippet(self, bottle: str, content: str) -> None:
        pass

    @abstractmethod
    def load_snippet(self, bottle: str) -> Optional[str]:
        pass

    def is_corrupted(self, bottle: str) -> bool:
        """True when a record exists for `bottle` but cannot be parsed"""
        return False

    def load_active(self) -> Optional[BottleState]:
        bottle = self.active_bottle()
        if not bottle:
            return None
        return self.load_for(bottle)

    def save(self, state: BottleState) -> None:
        """
        Write the record under `state.bottle` and make it the active bottle.

        Raises:
            StoreError: the record or pointer could not be written
        """
        self._write_record(state)
        self.set_active(state.bottle)


class FileStateStore(StateStore):
    """State store rooted at a directory (default ~/.bottle)"""

    def __init__(self, root: Path):
        self.root = Path(root).expanduser()

    @property
    def active_path(self) -> Path:
        return self.root / 'active'

    def bottle_path(self, bottle: str) -> Path:
        return self.root / 'bottles' / bottle

    def state_path(self, bottle: str) -> Path:
        return self.bottle_path(bottle) / 'state.json'

    def snippet_path(self, bottle: str) -> Path:
        return self.bottle_path(bottle) / 'agents-md-snippet'

    def active_bottle(self) -> Optional[str]:
        try:
            name = self.active_path.read_text(encoding='utf-8').strip()
        except OSError:
            return None
        return name or None

    def load_for(self, bottle: str) -> Optional[BottleState]:
        path = self.state_path(bottle)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return BottleState.from_dict(data)
        except OSError:
            return None
        except (json.JSONDecodeError, KeyError, ValueError, TypeError, AttributeError):
            # Unparsable record: same as no record
            return None

    def is_corrupted(self, bottle: str) -> bool:
        return self.state_path(bottle).exists() and self.load_for(bottle) is None

    def _write(self, path: Path, content: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_name(path.name + '.tmp')
            tmp.write_text(content, encoding='utf-8')
            tmp.replace(path)
        except OSError as e:
            raise StoreError(f"Failed to write {path}: {e}") from e

    def _write_record(self, state: BottleState) -> None:
        self._write(self.state_path(state.bottle), json.dumps(state.to_dict(), indent=2) + '\n')

    def set_active(self, bottle: str) -> None:
        self._write(self.active_path, bottle)

    def save_snippet(self, bottle: str, content: str) -> None:
        self._write(self.snippet_path(bottle), content)

    def load_snippet(self, bottle: str) -> Optional[str]:
        try:
            return self.snippet_path(bottle).read_text(encoding='utf-8')
        except OSError:
            return None


class MemoryStateStore(StateStore):
    """In-memory store; records are kept in serialized form like on disk"""

    def __init__(self):
        self.records: Dict[str, dict] = {}
        self.snippets: Dict[str, str] = {}
        self.active: Optional[str] = None

    def active_bottle(self) -> Optional[str]:
        return self.active

    def load_for(self, bottle: str) -> Optional[BottleState]:
        data = self.records.get(bottle)
        if data is None:
            return None
        try:
            return BottleState.from_dict(json.loads(json.dumps(data)))
        except (KeyError, ValueError, TypeError, AttributeError):
            return None

    def is_corrupted(self, bottle: str) -> bool:
        return bottle in self.records and self.load_for(bottle) is None

    def _write_record(self, state: BottleState) -> None:
        self.records[state.bottle] = state.to_dict()

    def set_active(self, bottle: str) -> None:
        self.active = bottle

    def save_snippet(self, bottle: str, content: str) -> None:
        self.snippets[bottle] = content

    def load_snippet(self, bottle: str) -> Optional[str]:
        return self.snippets.get(bottle)
