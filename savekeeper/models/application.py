"""Application record and scan/backup report models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from pathlib import Path


class Platform(StrEnum):
    """Where an application record came from."""

    STEAM = "steam"
    EPIC = "epic"
    UPLAY = "uplay"
    ORIGIN = "origin"
    GOG = "gog"
    XBOX = "xbox"
    MULTIPLE = "multiple"
    CUSTOM = "custom"
    PCGW = "pcgw"  # Added from a PCGamingWiki lookup


@dataclass
class ApplicationRecord:
    """One tracked application and the locations of its save data."""

    id: str
    name: str
    platform: str = Platform.CUSTOM
    save_paths: list[str] = field(default_factory=list)
    patterns: list[str] = field(default_factory=list)
    last_backup: datetime | None = None  # None → never backed up
    total_size: int = 0
    file_count: int = 0
    custom_paths: list[str] = field(default_factory=list)  # User-entered, never auto-removed
    metadata: dict[str, str] = field(default_factory=dict)

    def copy(self) -> ApplicationRecord:
        """Independent copy (lists and metadata are not shared)."""
        return ApplicationRecord(
            id=self.id,
            name=self.name,
            platform=self.platform,
            save_paths=list(self.save_paths),
            patterns=list(self.patterns),
            last_backup=self.last_backup,
            total_size=self.total_size,
            file_count=self.file_count,
            custom_paths=list(self.custom_paths),
            metadata=dict(self.metadata),
        )


@dataclass
class ScanOutcome:
    """Report of a single scan run. Not persisted."""

    new_ids: list[str] = field(default_factory=list)
    updated_ids: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    elapsed: float = 0.0  # Seconds
    total: int = 0


@dataclass
class BackupEntry:
    """An existing snapshot on disk."""

    path: Path
    size: int
    created: datetime
    compressed: bool


@dataclass
class BatchBackupResult:
    """Aggregate result of a batch backup — item failures live in ``errors``."""

    total: int = 0
    success_count: int = 0
    error_count: int = 0
    errors: list[str] = field(default_factory=list)
    backup_root: str = ""
    artifacts: list[str] = field(default_factory=list)
