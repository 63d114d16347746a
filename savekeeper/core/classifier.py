"""Save-directory classifier — decide whether a directory holds save data."""

from __future__ import annotations

import fnmatch
from pathlib import Path
from typing import Iterable

from loguru import logger

# Common save-file patterns, also the default patterns of auto-detected records
SAVE_FILE_PATTERNS: list[str] = [
    "*.sav", "*.save", "*.dat", "*.bin", "*.cfg",
    "save*", "*.slot", "profile*", "*.bak",
    "*.json", "*.xml", "*.ini", "*.txt", "*.sl2",
]

SAVE_KEYWORDS: list[str] = ["save", "profile", "config", "settings", "user", "player"]

# Upper bound of the "small directory" clause
SMALL_DIRECTORY_LIMIT = 20


def matches_any(filename: str, patterns: Iterable[str]) -> bool:
    """Case-insensitive glob match of a bare filename against ``patterns``."""
    name = filename.lower()
    return any(fnmatch.fnmatchcase(name, pattern.lower()) for pattern in patterns)


class SaveDirectoryClassifier:
    """
    Heuristic classifier over a directory's immediate files.

    The pattern and keyword tables are plain data so they can be swapped
    for tests or per-platform tuning.
    """

    def __init__(
        self,
        patterns: list[str] | None = None,
        keywords: list[str] | None = None,
    ) -> None:
        self._patterns = list(SAVE_FILE_PATTERNS if patterns is None else patterns)
        self._keywords = [k.lower() for k in (SAVE_KEYWORDS if keywords is None else keywords)]

    @property
    def patterns(self) -> list[str]:
        return list(self._patterns)

    def score(self, filenames: Iterable[str]) -> tuple[int, int]:
        """
        Score a list of filenames.

        Each file adds one point for a pattern match and one for a keyword
        hit. Returns ``(score, total_files)``.
        """
        score = 0
        total = 0
        for filename in filenames:
            total += 1
            name = filename.lower()
            if matches_any(name, self._patterns):
                score += 1
            if any(keyword in name for keyword in self._keywords):
                score += 1
        return score, total

    @staticmethod
    def is_save_listing(score: int, total: int) -> bool:
        # The small-directory clause (0 < total < 20 and score > 0) is
        # implied by score >= 1, so it never changes the outcome.
        return score >= 1

    def looks_like_save_directory(self, path: str | Path) -> bool:
        """Classify ``path`` from its immediate (non-recursive) files."""
        try:
            filenames = [p.name for p in Path(path).iterdir() if not p.is_dir()]
        except OSError as e:
            logger.debug(f"Cannot list {path}: {e}")
            return False

        score, total = self.score(filenames)
        return self.is_save_listing(score, total)
