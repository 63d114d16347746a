"""Tests for the SaveManager public operations."""

from __future__ import annotations

import os
import zipfile
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from savekeeper.config import Config
from savekeeper.context import AppContext
from savekeeper.core.backup import ArchiveEngine
from savekeeper.core.classifier import SaveDirectoryClassifier
from savekeeper.core.save_manager import SaveManager
from savekeeper.core.scanner import Scanner
from savekeeper.data.catalog import Catalog
from savekeeper.errors import NotFoundError, StorageError, TransportError, ValidationError
from savekeeper.models.application import ApplicationRecord
from savekeeper.models.policy import BackupPolicy
from savekeeper.models.search_result import (
    NOT_FOUND_REASON,
    ApplicationSelection,
    SearchResult,
)
from savekeeper.scrapers.base import KnowledgeSource


class FakeKnowledgeSource(KnowledgeSource):
    """In-memory knowledge source keyed by query."""

    def __init__(self, entries: dict[str, list[SearchResult]], failing: set[str] | None = None):
        self._entries = entries
        self._failing = failing or set()

    @property
    def name(self) -> str:
        return "fake"

    @property
    def display_name(self) -> str:
        return "Fake Wiki"

    def search(self, query: str) -> list[SearchResult]:
        if query in self._failing:
            raise TransportError("connection reset")
        return self._entries.get(query, [])

    def resolve_save_paths(self, page_id: str) -> list[str]:
        return []

    def get_by_steam_id(self, steam_app_id: str) -> SearchResult:
        for results in self._entries.values():
            for result in results:
                if result.steam_app_id == steam_app_id:
                    return result
        raise NotFoundError(f"No entry for Steam App ID {steam_app_id}")


@pytest.fixture
def home(tmp_path: Path) -> Path:
    d = tmp_path / "home"
    (d / "Foo").mkdir(parents=True)
    (d / "Foo" / "slot1.sav").write_bytes(b"slot")
    (d / "Foo" / "cache.tmp").write_bytes(b"tmp")
    return d


@pytest.fixture
def knowledge() -> FakeKnowledgeSource:
    foo = SearchResult(name="Foo", page_id="101", steam_app_id="4242", save_paths=["~/Foo"])
    empty = SearchResult(name="Bar", page_id="102")
    empty.mark_unavailable()
    return FakeKnowledgeSource({"Foo": [foo], "Bar": [empty]}, failing={"Flaky"})


@pytest.fixture
def ctx(tmp_path: Path, home: Path, knowledge: FakeKnowledgeSource) -> AppContext:
    config = Config(tmp_path / "config")
    env = {"HOME": str(home)}
    catalog = Catalog(config.data_dir, config, env)
    classifier = SaveDirectoryClassifier()
    return AppContext(
        config=config,
        env=env,
        catalog=catalog,
        classifier=classifier,
        scanner=Scanner(config, catalog, classifier, env, roots={}, known={}),
        archive=ArchiveEngine(config, catalog),
        knowledge_source=knowledge,
    )


@pytest.fixture
def manager(ctx: AppContext) -> SaveManager:
    return SaveManager(ctx)


class TestCustomApplications:
    def test_add_custom(self, manager: SaveManager, ctx: AppContext) -> None:
        record = manager.add_custom_application("Foo Game", "~/Foo", ["*.sav"])
        assert record.id == "foo"
        assert record.platform == "custom"
        assert record.custom_paths == ["~/Foo"]
        assert record.file_count == 1
        assert ctx.catalog.path.exists()

    def test_missing_path_rejected(self, manager: SaveManager, ctx: AppContext) -> None:
        with pytest.raises(ValidationError):
            manager.add_custom_application("Foo", "/nonexistent/path", ["*.sav"])
        assert ctx.catalog.count == 0
        assert not ctx.catalog.path.exists()

    def test_default_patterns(self, manager: SaveManager) -> None:
        record = manager.add_custom_application("Foo", "~/Foo")
        assert "*.sav" in record.patterns

    def test_second_path_folds_into_existing(
        self, manager: SaveManager, home: Path
    ) -> None:
        (home / "alt" / "Foo").mkdir(parents=True)
        manager.add_custom_application("Foo", "~/Foo", ["*.sav"])
        record = manager.add_custom_application("Foo", "~/alt/Foo", ["*.sav"])
        assert record.custom_paths == ["~/Foo", "~/alt/Foo"]


class TestKnowledgeSource:
    def test_search_passthrough(self, manager: SaveManager) -> None:
        assert [r.name for r in manager.search_knowledge_source("Foo")] == ["Foo"]

    def test_search_transport_error(self, manager: SaveManager) -> None:
        with pytest.raises(TransportError):
            manager.search_knowledge_source("Flaky")

    def test_add_from_selection(self, manager: SaveManager, knowledge) -> None:
        selected = knowledge.search("Foo")[0]
        record = manager.add_from_knowledge_source(
            ApplicationSelection(name="Foo", selected=selected)
        )
        assert record.platform == "pcgw"
        assert record.save_paths == ["~/Foo"]
        assert record.custom_paths == []
        assert record.metadata["pcgw_page_id"] == "101"
        assert record.metadata["steam_app_id"] == "4242"

    def test_add_from_selection_with_custom_path(self, manager: SaveManager) -> None:
        record = manager.add_from_knowledge_source(
            ApplicationSelection(name="Foo", custom_path="~/Foo")
        )
        assert record.custom_paths == ["~/Foo"]

    def test_add_from_selection_no_existing_path(self, manager: SaveManager, ctx) -> None:
        selected = SearchResult(name="Ghost", save_paths=["%APPDATA%\\Ghost"])
        with pytest.raises(ValidationError):
            manager.add_from_knowledge_source(ApplicationSelection(name="Ghost", selected=selected))
        assert ctx.catalog.count == 0


class TestBackups:
    def test_create_backup(self, manager: SaveManager) -> None:
        manager.add_custom_application("Foo", "~/Foo", ["*.sav", "*.tmp"])
        archive = manager.create_backup("foo")
        with zipfile.ZipFile(archive) as zf:
            assert zf.namelist() == ["slot1.sav"]
        assert manager.get_application("foo").last_backup is not None
        assert len(manager.list_backups("foo")) == 1

    def test_create_backup_unknown(self, manager: SaveManager) -> None:
        with pytest.raises(NotFoundError):
            manager.create_backup("nope")

    def test_pre_1980_timestamp(self, manager: SaveManager, home: Path) -> None:
        manager.add_custom_application("Foo", "~/Foo", ["*.sav"])
        os.utime(home / "Foo" / "slot1.sav", (0, 0))

        archive = manager.create_backup("foo")

        with zipfile.ZipFile(archive) as zf:
            assert zf.read("slot1.sav") == b"slot"


class TestCatalogPersistence:
    @pytest.fixture
    def blocked(self, ctx: AppContext, tmp_path: Path) -> AppContext:
        blocker = tmp_path / "blocker"
        blocker.write_bytes(b"file, not a directory")
        ctx.catalog = Catalog(blocker, ctx.config, ctx.env)
        return ctx

    def test_add_reports_write_failure(self, blocked: AppContext) -> None:
        manager = SaveManager(blocked)
        with pytest.raises(StorageError):
            manager.add_custom_application("Foo", "~/Foo")

    def test_remove_reports_write_failure(self, blocked: AppContext) -> None:
        blocked.catalog.upsert(ApplicationRecord(id="foo", name="Foo"))
        with pytest.raises(StorageError):
            SaveManager(blocked).remove_application("foo")


class TestBatch:
    def test_partial_failure(self, manager: SaveManager, ctx: AppContext, tmp_path: Path) -> None:
        dest = tmp_path / "batch"

        result = manager.batch_create_backups(["Unknown", "Flaky", "Bar", "Foo"], str(dest))

        assert result.total == 4
        assert result.success_count == 1
        assert result.error_count == 3
        assert result.errors[0] == f"Unknown: {NOT_FOUND_REASON}"
        assert result.errors[1].startswith("Flaky:")
        assert result.errors[2].startswith("Bar:")
        assert len(result.artifacts) == 1
        assert Path(result.artifacts[0]).parent == dest / "foo"
        assert ctx.catalog.get("foo").platform == "pcgw"

    def test_policy_root_unchanged(self, manager: SaveManager, ctx: AppContext, tmp_path: Path) -> None:
        before = manager.get_backup_root()
        manager.batch_create_backups(["Foo"], str(tmp_path / "batch"))
        assert manager.get_backup_root() == before
        assert ctx.config.backup_dir is None

    def test_pre_1980_timestamp_does_not_abort(
        self, manager: SaveManager, home: Path, tmp_path: Path
    ) -> None:
        os.utime(home / "Foo" / "slot1.sav", (0, 0))

        result = manager.batch_create_backups(["Foo", "Unknown"], str(tmp_path / "batch"))

        assert result.success_count == 1
        assert result.errors == [f"Unknown: {NOT_FOUND_REASON}"]

    def test_backup_failure_continues(self, manager: SaveManager, ctx: AppContext) -> None:
        ctx.archive.create_backup = MagicMock(side_effect=StorageError("disk full"))
        result = manager.batch_create_backups(["Foo", "Foo"])
        assert result.error_count == 2
        assert result.errors == ["Foo: disk full", "Foo: disk full"]


class TestAdministration:
    def test_remove(self, manager: SaveManager) -> None:
        manager.add_custom_application("Foo", "~/Foo")
        manager.remove_application("foo")
        assert manager.list_applications() == []

    def test_remove_unknown(self, manager: SaveManager) -> None:
        with pytest.raises(NotFoundError):
            manager.remove_application("nope")

    def test_validate_paths(self, manager: SaveManager, home: Path) -> None:
        manager.add_custom_application("Foo", "~/Foo")
        valid, invalid = manager.validate_paths("foo")
        assert valid == [str(home / "Foo")]
        assert invalid == []

    def test_set_backup_root(self, manager: SaveManager, tmp_path: Path) -> None:
        target = manager.set_backup_root(str(tmp_path / "new-root"))
        assert target.is_dir()
        assert not (target / ".test_write").exists()
        assert manager.get_backup_root() == target

    def test_set_backup_root_not_writable(self, manager: SaveManager, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_bytes(b"file")
        with pytest.raises(StorageError):
            manager.set_backup_root(str(blocker / "sub"))

    def test_policy_round_trip(self, manager: SaveManager) -> None:
        policy = manager.get_policy()
        policy.max_backups = 3
        policy.compression_enabled = False
        manager.update_policy(policy)
        assert manager.get_policy().max_backups == 3
        assert manager.get_policy().compression_enabled is False

    def test_policy_rejects_zero_backups(self, manager: SaveManager) -> None:
        with pytest.raises(ValidationError):
            manager.update_policy(BackupPolicy(max_backups=0))
