"""Save scanner — discover applications under well-known save roots."""

from __future__ import annotations

import time
from pathlib import Path
from typing import TYPE_CHECKING, Mapping

from loguru import logger

from savekeeper.core.classifier import SaveDirectoryClassifier
from savekeeper.core.known_locations import COMMON_SAVE_ROOTS, KNOWN_APPLICATIONS
from savekeeper.core.path_expander import expand, missing_placeholders
from savekeeper.errors import StorageError
from savekeeper.models.application import ApplicationRecord, ScanOutcome
from savekeeper.utils import infer_name, make_app_id

if TYPE_CHECKING:
    from savekeeper.config import Config
    from savekeeper.data.catalog import Catalog


class Scanner:
    """
    Discovery orchestrator.

    Walks the platform save roots, asks the classifier about every
    directory and merges new applications into the catalog. Every step
    reports its failures into the ScanOutcome instead of aborting the run.
    """

    def __init__(
        self,
        config: Config,
        catalog: Catalog,
        classifier: SaveDirectoryClassifier,
        env: Mapping[str, str] | None = None,
        roots: Mapping[str, list[str]] | None = None,
        known: Mapping[str, ApplicationRecord] | None = None,
    ) -> None:
        self._config = config
        self._catalog = catalog
        self._classifier = classifier
        self._env = env
        self._roots = COMMON_SAVE_ROOTS if roots is None else roots
        self._known = KNOWN_APPLICATIONS if known is None else known

    def scan(self) -> ScanOutcome:
        """Run a full discovery pass and refresh stats of every record."""
        started = time.monotonic()
        outcome = ScanOutcome()
        logger.info("Starting application scan")

        outcome.new_ids.extend(self._add_known_applications())

        for platform, templates in self._roots.items():
            for template in templates:
                outcome.errors.extend(self._scan_root(template, platform, outcome.new_ids))

        for record in self._catalog.list():
            errors = self._catalog.refresh_stats(record)
            if errors:
                outcome.errors.extend(errors)
            else:
                outcome.updated_ids.append(record.id)

        try:
            self._catalog.save()
        except StorageError as e:
            outcome.errors.append(str(e))

        outcome.total = self._catalog.count
        outcome.elapsed = time.monotonic() - started
        logger.info(
            f"Scan complete: {outcome.total} application(s), "
            f"{len(outcome.new_ids)} new, {len(outcome.updated_ids)} updated, "
            f"{len(outcome.errors)} error(s) in {outcome.elapsed:.1f}s"
        )
        return outcome

    # ── Steps ──

    def _add_known_applications(self) -> list[str]:
        """Insert known applications whose save location exists."""
        added: list[str] = []
        for app_id, known in self._known.items():
            if self._catalog.contains(app_id):
                continue
            if any(self._catalog.path_exists(p) for p in known.save_paths):
                if self._catalog.merge_discovered(known.copy()):
                    added.append(app_id)
                    logger.info(f"Known application detected: {known.name}")
        return added

    def _scan_root(self, template: str, platform: str, new_ids: list[str]) -> list[str]:
        """Walk one root; return the errors met on the way."""
        errors: list[str] = []
        if missing_placeholders(template, self._env):
            logger.debug(f"Skipping root with unresolved placeholders: {template}")
            return errors

        root = Path(expand(template, self._env))
        if not root.is_dir():
            return errors

        max_depth = self._config.scan_max_depth

        def on_error(e: OSError) -> None:
            errors.append(f"Error scanning {e.filename}: {e.strerror or e}")

        for dirpath, dirnames, _filenames in root.walk(on_error=on_error):
            if len(dirpath.relative_to(root).parts) >= max_depth:
                dirnames.clear()

            if not self._classifier.looks_like_save_directory(dirpath):
                continue

            record = ApplicationRecord(
                id=make_app_id(str(dirpath)),
                name=infer_name(str(dirpath)),
                platform=platform,
                save_paths=[str(dirpath)],
                patterns=self._classifier.patterns,
            )
            if self._catalog.merge_discovered(record):
                new_ids.append(record.id)
                logger.info(f"New application detected: {record.name} at {dirpath}")

        return errors
