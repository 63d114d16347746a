"""Application catalog — JSON-based index of tracked applications."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping

from loguru import logger

from savekeeper.core.classifier import matches_any
from savekeeper.core.path_expander import expand, missing_placeholders
from savekeeper.errors import NotFoundError, StorageError
from savekeeper.models.application import ApplicationRecord

if TYPE_CHECKING:
    from savekeeper.config import Config


def _record_from_dict(data: dict[str, Any]) -> ApplicationRecord:
    """Reconstruct an ApplicationRecord from a dict (loaded from JSON)."""
    raw_backup = data.get("last_backup")
    return ApplicationRecord(
        id=data["id"],
        name=data.get("name", data["id"]),
        platform=data.get("platform", "custom"),
        save_paths=list(data.get("save_paths") or []),
        patterns=list(data.get("patterns") or []),
        last_backup=datetime.fromisoformat(raw_backup) if raw_backup else None,
        total_size=int(data.get("total_size", 0)),
        file_count=int(data.get("file_count", 0)),
        custom_paths=list(data.get("custom_paths") or []),
        metadata=dict(data.get("metadata") or {}),
    )


def _record_to_dict(record: ApplicationRecord) -> dict[str, Any]:
    """Convert an ApplicationRecord to a serializable dict."""
    return {
        "id": record.id,
        "name": record.name,
        "save_paths": record.save_paths,
        "patterns": record.patterns,
        "platform": str(record.platform),
        "last_backup": record.last_backup.isoformat() if record.last_backup else None,
        "total_size": record.total_size,
        "file_count": record.file_count,
        "custom_paths": record.custom_paths,
        "metadata": record.metadata,
    }


class Catalog:
    """
    Tracked-application index — reads/writes game_saves.json.

    Key: ``ApplicationRecord.id``. The file is rewritten wholesale on
    every save.
    """

    def __init__(
        self,
        data_dir: Path,
        config: Config,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._data_dir = data_dir
        self._path = data_dir / "game_saves.json"
        self._config = config
        self._env = env
        self._records: dict[str, ApplicationRecord] = {}

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> None:
        """Load the catalog from disk."""
        self._records.clear()
        if not self._path.exists():
            return
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
            for key, record_data in (data.get("detected_games") or {}).items():
                try:
                    record_data.setdefault("id", key)
                    self._records[key] = _record_from_dict(record_data)
                except (TypeError, KeyError, ValueError) as e:
                    logger.warning(f"Skipping malformed catalog entry '{key}': {e}")
        except (json.JSONDecodeError, OSError) as e:
            logger.error(f"Failed to load catalog: {e}")

    def save(self) -> None:
        """Persist the catalog to disk. Raises StorageError when writing fails."""
        data = {
            "detected_games": {key: _record_to_dict(r) for key, r in self._records.items()},
            "last_update": datetime.now().astimezone().isoformat(),
        }
        tmp = self._path.with_suffix(".tmp")
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            tmp.replace(self._path)
        except OSError as e:
            logger.error(f"Failed to save catalog: {e}")
            if tmp.exists():
                tmp.unlink()
            raise StorageError(f"Cannot write catalog {self._path}: {e}") from e

    # ── CRUD ──

    def upsert(self, record: ApplicationRecord) -> None:
        """Add or replace a record."""
        self._records[record.id] = record

    def merge_discovered(self, record: ApplicationRecord) -> bool:
        """Insert an auto-detected record unless its id is already tracked."""
        if record.id in self._records:
            return False
        self._records[record.id] = record
        return True

    def get(self, app_id: str) -> ApplicationRecord | None:
        return self._records.get(app_id)

    def require(self, app_id: str) -> ApplicationRecord:
        record = self._records.get(app_id)
        if record is None:
            raise NotFoundError(f"Application '{app_id}' not found")
        return record

    def remove(self, app_id: str) -> ApplicationRecord:
        if app_id not in self._records:
            raise NotFoundError(f"Application '{app_id}' not found")
        return self._records.pop(app_id)

    def contains(self, app_id: str) -> bool:
        return app_id in self._records

    def list(self) -> list[ApplicationRecord]:
        """All records ordered by name."""
        return sorted(self._records.values(), key=lambda r: r.name)

    @property
    def count(self) -> int:
        return len(self._records)

    # ── Stats & validation ──

    def expand(self, path: str) -> str:
        return expand(path, self._env)

    def is_backup_candidate(self, filename: str, patterns: list[str]) -> bool:
        """Filename matches the record patterns and no exclude pattern."""
        return matches_any(filename, patterns) and not matches_any(
            filename, self._config.exclude_patterns
        )

    def refresh_stats(self, record: ApplicationRecord) -> list[str]:
        """
        Recompute ``total_size`` / ``file_count`` from disk.

        Unreadable entries are skipped; their errors are returned rather
        than raised.
        """
        errors: list[str] = []
        total_size = 0
        file_count = 0

        for save_path in record.save_paths:
            root = Path(self.expand(save_path))
            if root.is_file():
                candidates = [root] if self.is_backup_candidate(root.name, record.patterns) else []
            elif root.is_dir():
                candidates = [
                    dirpath / filename
                    for dirpath, _dirnames, filenames in root.walk(
                        on_error=lambda e: errors.append(f"{record.id}: {e}")
                    )
                    for filename in filenames
                    if self.is_backup_candidate(filename, record.patterns)
                ]
            else:
                continue

            for file in candidates:
                try:
                    total_size += file.stat().st_size
                    file_count += 1
                except OSError as e:
                    errors.append(f"{record.id}: {e}")

        record.total_size = total_size
        record.file_count = file_count
        return errors

    def validate_paths(self, app_id: str) -> tuple[list[str], list[str]]:
        """
        Split a record's expanded save paths into ``(valid, invalid)``.

        A path with unresolved or empty placeholders is invalid even if the
        blank-segment expansion happens to exist.
        """
        record = self.require(app_id)
        valid: list[str] = []
        invalid: list[str] = []
        for save_path in record.save_paths:
            expanded = self.expand(save_path)
            if missing_placeholders(save_path, self._env) or not Path(expanded).exists():
                invalid.append(expanded)
            else:
                valid.append(expanded)
        return valid, invalid

    def path_exists(self, path: str) -> bool:
        """True when ``path`` fully expands and exists on disk."""
        return not missing_placeholders(path, self._env) and Path(self.expand(path)).exists()
