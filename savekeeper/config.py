"""Application configuration — JSON-based, with file locking and batch update support."""

from __future__ import annotations

import json
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from loguru import logger

from savekeeper.errors import ValidationError
from savekeeper.models.policy import DEFAULT_EXCLUDE_PATTERNS, BackupPolicy

_instance: "Config | None" = None

# Default data directory
_DEFAULT_DATA_DIR = Path.home() / "Documents" / "SaveKeeper"


def get_config() -> Config:
    """Module-level factory — single global Config instance."""
    global _instance
    if _instance is None:
        _instance = Config()
    return _instance


def reset_config() -> None:
    """Reset the global config instance (for testing)."""
    global _instance
    _instance = None


class Config:
    """JSON-based application configuration with file locking."""

    _DEFAULTS: dict[str, Any] = {
        # Backup policy
        "backup_dir": "",
        "max_backups": 10,
        "compression_enabled": True,
        "exclude_patterns": list(DEFAULT_EXCLUDE_PATTERNS),
        "auto_backup": False,
        "scan_interval_hours": 24,
        # Scanning
        "scan_max_depth": 6,
        # Knowledge source
        "pcgw": {
            "base_url": "https://www.pcgamingwiki.com/w/api.php",
            "timeout": 10,
            "search_limit": 10,
        },
    }

    def __init__(self, config_dir: Path | None = None) -> None:
        self._data: dict[str, Any] = {}
        self._dir = config_dir or _DEFAULT_DATA_DIR
        self._path = self._dir / "config.json"
        self._lock = threading.Lock()
        self._defer_save = False
        self._load()

    def _load(self) -> None:
        """Load config from disk, merging with defaults."""
        self._data = json.loads(json.dumps(self._DEFAULTS))  # deep copy defaults
        if self._path.exists():
            try:
                with open(self._path, encoding="utf-8") as f:
                    user_data = json.load(f)
                self._deep_merge(self._data, user_data)
            except (json.JSONDecodeError, OSError) as e:
                logger.warning(f"Failed to load config, using defaults: {e}")

        if int(self._data.get("max_backups", 1)) < 1:
            logger.warning(f"Invalid max_backups {self._data['max_backups']}, using 1")
            self._data["max_backups"] = 1

    def _deep_merge(self, base: dict, override: dict) -> None:
        """Recursively merge override into base."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def _save(self) -> None:
        """Persist config to disk with file locking."""
        if self._defer_save:
            return
        with self._lock:
            self._dir.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(".tmp")
            try:
                with open(tmp_path, "w", encoding="utf-8") as f:
                    json.dump(self._data, f, ensure_ascii=False, indent=2)
                tmp_path.replace(self._path)
            except OSError as e:
                logger.error(f"Failed to save config: {e}")
                if tmp_path.exists():
                    tmp_path.unlink(missing_ok=True)

    @contextmanager
    def batch_update(self) -> Iterator[None]:
        """Context manager for batching multiple config changes into a single write."""
        self._defer_save = True
        try:
            yield
        finally:
            self._defer_save = False
            self._save()

    # ── Generic access ──

    def get(self, key: str, default: Any = None) -> Any:
        """Get a config value by dot-separated key path."""
        parts = key.split(".")
        node = self._data
        for part in parts:
            if isinstance(node, dict) and part in node:
                node = node[part]
            else:
                return default
        return node

    def set(self, key: str, value: Any) -> None:
        """Set a config value by dot-separated key path."""
        parts = key.split(".")
        node = self._data
        for part in parts[:-1]:
            if part not in node or not isinstance(node[part], dict):
                node[part] = {}
            node = node[part]
        node[parts[-1]] = value
        self._save()

    # ── Typed properties ──

    @property
    def data_dir(self) -> Path:
        return self._dir

    @property
    def backup_dir(self) -> Path | None:
        raw = self._data.get("backup_dir", "")
        return Path(raw) if raw else None

    @backup_dir.setter
    def backup_dir(self, value: Path | None) -> None:
        self.set("backup_dir", str(value) if value else "")

    @property
    def max_backups(self) -> int:
        return int(self._data.get("max_backups", 10))

    @max_backups.setter
    def max_backups(self, value: int) -> None:
        if int(value) < 1:
            raise ValidationError(f"max_backups must be at least 1, got {value}")
        self.set("max_backups", int(value))

    @property
    def compression_enabled(self) -> bool:
        return bool(self._data.get("compression_enabled", True))

    @compression_enabled.setter
    def compression_enabled(self, value: bool) -> None:
        self.set("compression_enabled", bool(value))

    @property
    def exclude_patterns(self) -> list[str]:
        return list(self._data.get("exclude_patterns", []))

    @exclude_patterns.setter
    def exclude_patterns(self, value: list[str]) -> None:
        self.set("exclude_patterns", list(value))

    @property
    def auto_backup(self) -> bool:
        return bool(self._data.get("auto_backup", False))

    @auto_backup.setter
    def auto_backup(self, value: bool) -> None:
        self.set("auto_backup", bool(value))

    @property
    def scan_max_depth(self) -> int:
        return int(self._data.get("scan_max_depth", 6))

    @property
    def pcgw_config(self) -> dict[str, Any]:
        return self._data.get("pcgw", {})

    # ── Policy snapshot ──

    @property
    def policy(self) -> BackupPolicy:
        """Current backup policy as a detached snapshot."""
        return BackupPolicy(
            backup_dir=self._data.get("backup_dir", ""),
            max_backups=self.max_backups,
            compression_enabled=self.compression_enabled,
            exclude_patterns=self.exclude_patterns,
            auto_backup=self.auto_backup,
            scan_interval_hours=int(self._data.get("scan_interval_hours", 24)),
        )

    def apply_policy(self, policy: BackupPolicy) -> None:
        """Validate and persist a whole policy in one write."""
        if policy.max_backups < 1:
            raise ValidationError(f"max_backups must be at least 1, got {policy.max_backups}")
        with self.batch_update():
            self.set("backup_dir", policy.backup_dir)
            self.set("max_backups", policy.max_backups)
            self.set("compression_enabled", policy.compression_enabled)
            self.set("exclude_patterns", list(policy.exclude_patterns))
            self.set("auto_backup", policy.auto_backup)
            self.set("scan_interval_hours", policy.scan_interval_hours)
