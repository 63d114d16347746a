"""Backup policy model."""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_EXCLUDE_PATTERNS = ["*.tmp", "*.log", "*.cache", "*.lock"]


@dataclass
class BackupPolicy:
    """Snapshot of the backup-related configuration values."""

    backup_dir: str = ""  # Empty → <data_dir>/backups
    max_backups: int = 10
    compression_enabled: bool = True
    exclude_patterns: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS))
    auto_backup: bool = False
    scan_interval_hours: int = 24
