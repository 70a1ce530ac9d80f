#!/usr/bin/env python3
"""
Bottle Config Backup Manager

Backs up user config files before an integration modifies them.

Backup location: <bottle home>/backups/{timestamp}/
"""

import json
import shutil
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from bottle_manager.errors import InstallError


METADATA_FILE = 'backup_metadata.json'


class ConfigBackupManager:
    """Copies config files aside, one timestamped directory per session"""

    def __init__(self, backup_base: Path, keep_count: int = 10):
        self.backup_base = Path(backup_base).expanduser()
        self.keep_count = keep_count
        self.current_backup_dir: Optional[Path] = None
        self.backed_up_files: List[str] = []

    def _get_timestamp(self) -> str:
        return datetime.now().strftime('%Y-%m-%d-%H%M%S')

    def start_backup_session(self) -> Path:
        """Start a new backup session, returns backup directory"""
        timestamp = self._get_timestamp()
        self.current_backup_dir = self.backup_base / timestamp
        self.current_backup_dir.mkdir(parents=True, exist_ok=True)
        self.backed_up_files = []
        self._save_metadata(timestamp)
        return self.current_backup_dir

    def backup_file(self, source: Path) -> Optional[Path]:
        """
        Backup a single file if it exists.

        Args:
            source: File about to be modified

        Returns:
            Path of the copy, or None if the file didn't exist
        """
        source = Path(source)
        if not source.exists():
            return None
        if self.current_backup_dir is None:
            self.start_backup_session()

        dest = self.current_backup_dir / source.name
        try:
            shutil.copy2(source, dest)
        except OSError as e:
            raise InstallError(source.name, f"Failed to back up {source}: {e}") from e

        self.backed_up_files.append(str(source.absolute()))
        self._save_metadata(self.current_backup_dir.name)
        self.cleanup_old_backups()
        return dest

    def _save_metadata(self, timestamp: str) -> None:
        metadata = {
            'timestamp': timestamp,
            'created_at': datetime.now().isoformat(),
            'files': self.backed_up_files,
        }
        with open(self.current_backup_dir / METADATA_FILE, 'w', encoding='utf-8') as f:
            json.dump(metadata, f, indent=2)

    def list_backups(self) -> List[Dict]:
        """
        Returns:
            Backup info dicts, newest first
        """
        backups = []
        if not self.backup_base.exists():
            return backups

        for backup_dir in sorted(self.backup_base.iterdir(), reverse=True):
            if not backup_dir.is_dir():
                continue
            try:
                with open(backup_dir / METADATA_FILE, 'r', encoding='utf-8') as f:
                    metadata = json.load(f)
            except (OSError, json.JSONDecodeError):
                # No usable metadata, just list files
                metadata = {
                    'timestamp': backup_dir.name,
                    'files': [f.name for f in backup_dir.iterdir() if f.name != METADATA_FILE],
                }
            metadata['backup_dir'] = str(backup_dir)
            backups.append(metadata)
        return backups

    def cleanup_old_backups(self) -> None:
        """Remove old backups, keeping only the most recent `keep_count`"""
        backups = self.list_backups()
        for backup in backups[self.keep_count:]:
            shutil.rmtree(backup['backup_dir'], ignore_errors=True)
