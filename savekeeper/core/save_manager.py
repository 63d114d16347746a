"""Save manager — the public operations, serialized on the context lock."""

from __future__ import annotations

import functools
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, TypeVar

from loguru import logger

from savekeeper.core.classifier import SAVE_FILE_PATTERNS
from savekeeper.core.path_expander import expand
from savekeeper.errors import SaveKeeperError, StorageError, ValidationError
from savekeeper.models.application import (
    ApplicationRecord,
    BackupEntry,
    BatchBackupResult,
    Platform,
    ScanOutcome,
)
from savekeeper.models.policy import BackupPolicy
from savekeeper.models.search_result import ApplicationSelection, SearchResult
from savekeeper.utils import make_app_id

if TYPE_CHECKING:
    from savekeeper.context import AppContext

_F = TypeVar("_F", bound=Callable[..., Any])


def _serialized(method: _F) -> _F:
    """Run the method while holding the context lock."""

    @functools.wraps(method)
    def wrapper(self: SaveManager, *args: Any, **kwargs: Any) -> Any:
        with self._ctx.lock:
            return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


def _append_unique(target: list[str], items: list[str]) -> None:
    for item in items:
        if item not in target:
            target.append(item)


class SaveManager:
    """
    Entry point for every caller-facing operation.

    Single-item operations raise SaveKeeperError subclasses; scans and
    batches report item failures inside their result objects.
    """

    def __init__(self, ctx: AppContext) -> None:
        self._ctx = ctx

    @property
    def _catalog(self):
        return self._ctx.catalog

    # ── Discovery & listing ──

    @_serialized
    def scan_all(self) -> ScanOutcome:
        return self._ctx.scanner.scan()

    @_serialized
    def list_applications(self) -> list[ApplicationRecord]:
        return self._catalog.list()

    @_serialized
    def get_application(self, app_id: str) -> ApplicationRecord:
        """Record with freshly computed size / file count."""
        record = self._catalog.require(app_id)
        for error in self._catalog.refresh_stats(record):
            logger.warning(f"Stat refresh: {error}")
        return record

    @_serialized
    def validate_paths(self, app_id: str) -> tuple[list[str], list[str]]:
        return self._catalog.validate_paths(app_id)

    @_serialized
    def remove_application(self, app_id: str) -> None:
        record = self._catalog.remove(app_id)
        self._catalog.save()
        logger.info(f"Removed application: {record.name}")

    # ── Adding applications ──

    def _store(self, record: ApplicationRecord) -> ApplicationRecord:
        """Insert ``record`` or fold its paths into the tracked one."""
        existing = self._catalog.get(record.id)
        if existing is not None:
            _append_unique(existing.save_paths, record.save_paths)
            _append_unique(existing.custom_paths, record.custom_paths)
            _append_unique(existing.patterns, record.patterns)
            for key, value in record.metadata.items():
                existing.metadata.setdefault(key, value)
            record = existing
        else:
            self._catalog.upsert(record)

        for error in self._catalog.refresh_stats(record):
            logger.warning(f"Stat refresh: {error}")
        self._catalog.save()
        return record

    @_serialized
    def add_custom_application(
        self, name: str, save_path: str, patterns: list[str] | None = None
    ) -> ApplicationRecord:
        """Track a user-supplied save location. The path must exist."""
        if not self._catalog.path_exists(save_path):
            raise ValidationError(f"Save path does not exist: {self._catalog.expand(save_path)}")

        record = ApplicationRecord(
            id=make_app_id(save_path),
            name=name,
            platform=Platform.CUSTOM,
            save_paths=[save_path],
            patterns=list(patterns) if patterns else list(SAVE_FILE_PATTERNS),
            custom_paths=[save_path],
        )
        record = self._store(record)
        logger.info(f"Custom application added: {name}")
        return record

    @_serialized
    def search_knowledge_source(self, name: str) -> list[SearchResult]:
        return self._ctx.knowledge_source.search(name)

    @_serialized
    def add_from_knowledge_source(self, selection: ApplicationSelection) -> ApplicationRecord:
        """Track an application using the selected entry and/or a custom path."""
        record = ApplicationRecord(
            id=make_app_id(selection.name),
            name=selection.name,
            platform=Platform.PCGW,
            patterns=list(SAVE_FILE_PATTERNS),
        )
        if selection.selected is not None:
            record.metadata.update(self._provenance(selection.selected))
            record.save_paths.extend(selection.selected.save_paths)
        if selection.custom_path:
            record.save_paths.append(selection.custom_path)
            record.custom_paths.append(selection.custom_path)

        if not any(self._catalog.path_exists(p) for p in record.save_paths):
            raise ValidationError(f"None of the save paths for '{selection.name}' exist")

        record = self._store(record)
        logger.info(f"Application added from {self._ctx.knowledge_source.display_name}: {selection.name}")
        return record

    @staticmethod
    def _provenance(result: SearchResult) -> dict[str, str]:
        metadata = {
            "pcgw_page_id": result.page_id,
            "steam_app_id": result.steam_app_id,
            "release_date": result.release_date,
            "cover_url": result.cover_url,
        }
        return {k: v for k, v in metadata.items() if v}

    # ── Backups ──

    @_serialized
    def create_backup(self, app_id: str) -> Path:
        return self._ctx.archive.create_backup(app_id)

    @_serialized
    def list_backups(self, app_id: str) -> list[BackupEntry]:
        self._catalog.require(app_id)
        return self._ctx.archive.list_backups(app_id)

    @_serialized
    def batch_create_backups(
        self, names: list[str], destination: str | None = None
    ) -> BatchBackupResult:
        """
        Look up each name on the knowledge source and back it up.

        Items are processed one after another; a failed item is recorded
        in ``errors`` and the rest still run.
        """
        backup_root = Path(expand(destination, self._ctx.env)) if destination else None
        result = BatchBackupResult(
            total=len(names),
            backup_root=str(backup_root or self._ctx.archive.backup_root),
        )
        logger.info(f"Batch backup of {len(names)} application(s) into {result.backup_root}")

        for name in names:
            try:
                candidate = self._ctx.knowledge_source.lookup(name)
            except SaveKeeperError as e:
                self._record_failure(result, name, str(e))
                continue

            if not candidate.available:
                self._record_failure(result, name, candidate.reason)
                continue

            app_id = make_app_id(candidate.name)
            if not self._catalog.contains(app_id):
                self._catalog.upsert(
                    ApplicationRecord(
                        id=app_id,
                        name=candidate.name,
                        platform=Platform.PCGW,
                        save_paths=list(candidate.save_paths),
                        patterns=list(SAVE_FILE_PATTERNS),
                        metadata=self._provenance(candidate),
                    )
                )
                logger.info(f"Application added: {candidate.name}")

            try:
                artifact = self._ctx.archive.create_backup(app_id, backup_root)
            except SaveKeeperError as e:
                self._record_failure(result, name, str(e))
                continue

            result.success_count += 1
            result.artifacts.append(str(artifact))

        self._catalog.save()
        logger.info(
            f"Batch backup finished: {result.success_count} succeeded, {result.error_count} failed"
        )
        return result

    @staticmethod
    def _record_failure(result: BatchBackupResult, name: str, reason: str) -> None:
        result.error_count += 1
        result.errors.append(f"{name}: {reason}")
        logger.warning(f"Batch backup skipped {name}: {reason}")

    # ── Policy ──

    @_serialized
    def get_backup_root(self) -> Path:
        return self._ctx.archive.backup_root

    @_serialized
    def set_backup_root(self, path: str) -> Path:
        """Create ``path`` if needed, check it is writable, and store it."""
        target = Path(expand(path, self._ctx.env))
        probe = target / ".test_write"
        try:
            target.mkdir(parents=True, exist_ok=True)
            probe.write_text("test", encoding="utf-8")
            probe.unlink()
        except OSError as e:
            raise StorageError(f"Backup directory is not writable: {target}: {e}") from e

        self._ctx.config.backup_dir = target
        logger.info(f"Backup directory set to {target}")
        return target

    @_serialized
    def get_policy(self) -> BackupPolicy:
        return self._ctx.config.policy

    @_serialized
    def update_policy(self, policy: BackupPolicy) -> None:
        self._ctx.config.apply_policy(policy)
