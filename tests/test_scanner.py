"""Tests for the Scanner orchestrator."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from savekeeper.core.classifier import SaveDirectoryClassifier
from savekeeper.core.scanner import Scanner
from savekeeper.data.catalog import Catalog
from savekeeper.models.application import ApplicationRecord


@pytest.fixture
def tmp_config(tmp_path: Path):
    config = MagicMock()
    config.data_dir = tmp_path
    config.exclude_patterns = ["*.tmp"]
    config.scan_max_depth = 6
    return config


@pytest.fixture
def env(tmp_path: Path) -> dict[str, str]:
    return {"APPDATA": str(tmp_path / "roaming")}


@pytest.fixture
def catalog(tmp_path: Path, tmp_config, env: dict[str, str]) -> Catalog:
    return Catalog(tmp_path / "data", tmp_config, env)


@pytest.fixture
def roaming(tmp_path: Path) -> Path:
    root = tmp_path / "roaming"
    (root / "Cool_Game" / "saves").mkdir(parents=True)
    (root / "Cool_Game" / "saves" / "slot1.sav").write_bytes(b"slot")
    (root / "Media").mkdir()
    for i in range(25):
        (root / "Media" / f"clip{i}.mp4").write_bytes(b"x")
    return root


def _scanner(tmp_config, catalog, env, known=None) -> Scanner:
    return Scanner(
        tmp_config,
        catalog,
        SaveDirectoryClassifier(),
        env,
        roots={"steam": ["%APPDATA%", "%LOCALAPPDATA%/Packages"]},
        known=known or {},
    )


class TestDiscovery:
    def test_detects_save_directories(self, tmp_config, catalog, env, roaming: Path) -> None:
        outcome = _scanner(tmp_config, catalog, env).scan()

        assert outcome.new_ids == ["saves"]
        record = catalog.get("saves")
        assert record.platform == "steam"
        assert record.save_paths == [str(roaming / "Cool_Game" / "saves")]
        assert record.file_count == 1
        assert outcome.total == 1
        assert outcome.errors == []
        assert outcome.elapsed >= 0

    def test_inferred_name(self, tmp_config, catalog, env, tmp_path: Path) -> None:
        d = tmp_path / "roaming" / "my-cool_game"
        d.mkdir(parents=True)
        (d / "player.dat").write_bytes(b"x")

        _scanner(tmp_config, catalog, env).scan()

        assert catalog.get("my-cool_game").name == "My Cool Game"

    def test_custom_paths_survive_rescan(self, tmp_config, catalog, env, roaming: Path) -> None:
        catalog.upsert(
            ApplicationRecord(
                id="saves",
                name="Cool Game",
                platform="custom",
                save_paths=["/a"],
                custom_paths=["/a"],
                metadata={"note": "user"},
            )
        )

        outcome = _scanner(tmp_config, catalog, env).scan()

        record = catalog.get("saves")
        assert "saves" not in outcome.new_ids
        assert record.custom_paths == ["/a"]
        assert record.save_paths == ["/a"]
        assert record.metadata == {"note": "user"}

    def test_rescan_finds_nothing_new(self, tmp_config, catalog, env, roaming: Path) -> None:
        scanner = _scanner(tmp_config, catalog, env)
        scanner.scan()
        outcome = scanner.scan()
        assert outcome.new_ids == []
        assert outcome.updated_ids == ["saves"]

    def test_catalog_saved(self, tmp_config, catalog, env, roaming: Path) -> None:
        _scanner(tmp_config, catalog, env).scan()
        assert catalog.path.exists()

    def test_depth_limit(self, tmp_config, catalog, env, tmp_path: Path) -> None:
        deep = tmp_path / "roaming" / "a" / "b" / "c"
        deep.mkdir(parents=True)
        (deep / "save.dat").write_bytes(b"x")
        tmp_config.scan_max_depth = 1

        outcome = _scanner(tmp_config, catalog, env).scan()

        assert outcome.new_ids == []


class TestKnownApplications:
    def test_known_added_when_path_exists(self, tmp_config, catalog, env, tmp_path: Path) -> None:
        (tmp_path / "roaming" / "EldenRing").mkdir(parents=True)
        known = {
            "elden-ring": ApplicationRecord(
                id="elden-ring",
                name="Elden Ring",
                platform="steam",
                save_paths=["%APPDATA%/EldenRing"],
                patterns=["*.sl2"],
            ),
            "absent": ApplicationRecord(
                id="absent", name="Absent", save_paths=["%APPDATA%/Absent"]
            ),
        }

        outcome = _scanner(tmp_config, catalog, env, known).scan()

        assert "elden-ring" in outcome.new_ids
        assert not catalog.contains("absent")
        # The table entry itself is not shared with the catalog
        catalog.get("elden-ring").save_paths.append("/x")
        assert known["elden-ring"].save_paths == ["%APPDATA%/EldenRing"]


class TestErrorAccumulation:
    def test_stat_errors_do_not_abort(self, tmp_config, catalog, env, roaming: Path) -> None:
        catalog.upsert(ApplicationRecord(id="broken", name="Broken", save_paths=["/x"]))
        catalog.refresh_stats = MagicMock(
            side_effect=lambda record: ["broken: denied"] if record.id == "broken" else []
        )

        outcome = _scanner(tmp_config, catalog, env).scan()

        assert outcome.errors == ["broken: denied"]
        assert "saves" in outcome.updated_ids
        assert "broken" not in outcome.updated_ids

    def test_catalog_write_failure_reported(
        self, tmp_config, env, roaming: Path, tmp_path: Path
    ) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_bytes(b"file, not a directory")
        catalog = Catalog(blocker, tmp_config, env)

        outcome = _scanner(tmp_config, catalog, env).scan()

        assert outcome.new_ids == ["saves"]
        assert any("Cannot write catalog" in e for e in outcome.errors)
