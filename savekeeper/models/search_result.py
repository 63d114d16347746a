"""Knowledge-source search models."""

from __future__ import annotations

from dataclasses import dataclass, field

NOT_FOUND_REASON = "Not found on PCGamingWiki"
NO_SAVE_PATHS_REASON = "No save locations documented on PCGamingWiki"


@dataclass
class SearchResult:
    """A PCGamingWiki candidate and the save templates documented for it."""

    name: str
    page_id: str = ""
    steam_app_id: str = ""
    release_date: str = ""
    cover_url: str = ""
    save_paths: list[str] = field(default_factory=list)  # Unexpanded placeholder paths
    reason: str = ""

    @property
    def available(self) -> bool:
        return bool(self.save_paths)

    def mark_unavailable(self) -> None:
        """Fill ``reason`` when no save path was extracted."""
        if not self.save_paths and not self.reason:
            self.reason = NO_SAVE_PATHS_REASON

    @classmethod
    def not_found(cls, name: str) -> SearchResult:
        return cls(name=name, reason=NOT_FOUND_REASON)


@dataclass
class ApplicationSelection:
    """User's choice when adding an application from the knowledge source."""

    name: str
    selected: SearchResult | None = None
    custom_path: str = ""
