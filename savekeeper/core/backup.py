"""Archive engine — timestamped ZIP or folder snapshots with retention pruning."""

from __future__ import annotations

import shutil
import zipfile
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Iterator

from loguru import logger

from savekeeper.errors import StorageError
from savekeeper.models.application import ApplicationRecord, BackupEntry

if TYPE_CHECKING:
    from savekeeper.config import Config
    from savekeeper.data.catalog import Catalog

TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"


class ArchiveEngine:
    """Snapshot engine for catalog records."""

    def __init__(self, config: Config, catalog: Catalog) -> None:
        self._config = config
        self._catalog = catalog

    @property
    def backup_root(self) -> Path:
        root = self._config.backup_dir
        if not root:
            root = self._config.data_dir / "backups"
        return root

    def _app_backup_dir(self, app_id: str, backup_root: Path | None = None) -> Path:
        return (backup_root or self.backup_root) / app_id

    @staticmethod
    def _unique_basename(backup_dir: Path, app_id: str, timestamp: str) -> str:
        """``<id>_<timestamp>``, with a counter when the second is already taken."""
        base = f"{app_id}_{timestamp}"
        name = base
        counter = 2
        while (backup_dir / name).exists() or (backup_dir / f"{name}.zip").exists():
            name = f"{base}-{counter}"
            counter += 1
        return name

    # ── File selection ──

    def iter_backup_files(self, record: ApplicationRecord) -> Iterator[tuple[Path, str]]:
        """
        Yield ``(source, relative_name)`` for every qualifying file.

        With several save-path roots, names are prefixed by
        ``<index>_<root name>/`` so identical relative paths cannot collide.
        """
        namespaced = len(record.save_paths) > 1
        for index, save_path in enumerate(record.save_paths):
            root = Path(self._catalog.expand(save_path))
            prefix = f"{index}_{root.name or 'root'}/" if namespaced else ""

            if root.is_file():
                if self._catalog.is_backup_candidate(root.name, record.patterns):
                    yield root, prefix + root.name
                continue
            if not root.is_dir():
                logger.debug(f"Save path missing, skipped: {root}")
                continue

            for dirpath, dirnames, filenames in root.walk():
                dirnames.sort()
                for filename in sorted(filenames):
                    if not self._catalog.is_backup_candidate(filename, record.patterns):
                        continue
                    source = dirpath / filename
                    yield source, prefix + source.relative_to(root).as_posix()

    # ── Backup ──

    def create_backup(self, app_id: str, backup_root: Path | None = None) -> Path:
        """
        Snapshot an application's save paths.

        Returns the created ZIP file or directory. Raises NotFoundError for
        an unknown id and StorageError when writing fails; a partially
        written snapshot is left on disk.
        """
        record = self._catalog.require(app_id)
        logger.info(f"Creating backup for: {record.name}")

        backup_dir = self._app_backup_dir(record.id, backup_root)
        try:
            backup_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create backup directory {backup_dir}: {e}") from e

        timestamp = datetime.now().strftime(TIMESTAMP_FORMAT)
        basename = self._unique_basename(backup_dir, record.id, timestamp)

        try:
            if self._config.compression_enabled:
                target = backup_dir / f"{basename}.zip"
                count = self._write_zip(record, target)
            else:
                target = backup_dir / basename
                count = self._write_folder(record, target)
        except (OSError, ValueError) as e:
            raise StorageError(f"Backup of '{record.id}' failed: {e}") from e

        record.last_backup = datetime.now().astimezone()
        for error in self._catalog.refresh_stats(record):
            logger.warning(f"Stat refresh: {error}")
        self._catalog.save()
        logger.info(f"Backup created: {target} ({count} file(s))")

        try:
            self.prune(record.id, backup_root)
        except OSError as e:
            logger.warning(f"Failed to prune old backups for {record.id}: {e}")

        return target

    def _write_zip(self, record: ApplicationRecord, zip_path: Path) -> int:
        """Stream qualifying files into a ZIP archive."""
        count = 0
        with zipfile.ZipFile(
            zip_path, "w", zipfile.ZIP_DEFLATED, strict_timestamps=False
        ) as zf:
            for source, arcname in self.iter_backup_files(record):
                zf.write(source, arcname)
                count += 1
        return count

    def _write_folder(self, record: ApplicationRecord, target: Path) -> int:
        """Mirror qualifying files into an uncompressed directory."""
        count = 0
        target.mkdir(parents=True, exist_ok=True)
        for source, relname in self.iter_backup_files(record):
            dest = target / relname
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, dest)
            count += 1
        return count

    # ── Retention ──

    def prune(self, app_id: str, backup_root: Path | None = None) -> list[Path]:
        """
        Remove the oldest snapshots beyond ``max_backups``.

        Entries are ordered by modification time, newest first; equal
        times keep directory enumeration order. Returns the removed paths.
        """
        backup_dir = self._app_backup_dir(app_id, backup_root)
        if not backup_dir.is_dir():
            return []

        entries = [p for p in backup_dir.iterdir() if app_id in p.name]
        max_backups = self._config.max_backups
        if len(entries) <= max_backups:
            return []

        entries.sort(key=lambda p: p.stat().st_mtime, reverse=True)

        removed: list[Path] = []
        for old in entries[max_backups:]:
            try:
                if old.is_dir():
                    shutil.rmtree(old)
                else:
                    old.unlink()
                removed.append(old)
                logger.debug(f"Removed old backup: {old.name}")
            except OSError as e:
                logger.warning(f"Failed to remove old backup {old}: {e}")
        return removed

    # ── Listing ──

    def list_backups(self, app_id: str, backup_root: Path | None = None) -> list[BackupEntry]:
        """Existing snapshots for an application, newest first."""
        backup_dir = self._app_backup_dir(app_id, backup_root)
        if not backup_dir.is_dir():
            return []

        entries: list[BackupEntry] = []
        for path in backup_dir.iterdir():
            if app_id not in path.name:
                continue
            try:
                stat = path.stat()
                if path.is_dir():
                    size = sum(f.stat().st_size for f in path.rglob("*") if f.is_file())
                else:
                    size = stat.st_size
            except OSError as e:
                logger.warning(f"Skipping unreadable backup {path}: {e}")
                continue
            entries.append(
                BackupEntry(
                    path=path,
                    size=size,
                    created=datetime.fromtimestamp(stat.st_mtime),
                    compressed=path.suffix == ".zip",
                )
            )

        entries.sort(key=lambda e: e.created, reverse=True)
        return entries
