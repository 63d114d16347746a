"""Abstract base class for save-location knowledge sources."""

from __future__ import annotations

from abc import ABC, abstractmethod

from savekeeper.models.search_result import SearchResult


class KnowledgeSource(ABC):
    """Abstract interface for a community save-location database."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this source (e.g. 'pcgw')."""
        ...

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-readable name (e.g. 'PCGamingWiki')."""
        ...

    @abstractmethod
    def search(self, query: str) -> list[SearchResult]:
        """Search entries by title and resolve their save paths."""
        ...

    @abstractmethod
    def resolve_save_paths(self, page_id: str) -> list[str]:
        """Save-path templates documented on one page."""
        ...

    @abstractmethod
    def get_by_steam_id(self, steam_app_id: str) -> SearchResult:
        """Fetch the entry for a Steam App ID. Raises NotFoundError when none matches."""
        ...

    def lookup(self, query: str) -> SearchResult:
        """Best candidate for ``query``, or an unavailable placeholder result."""
        results = self.search(query)
        if not results:
            return SearchResult.not_found(query)
        return results[0]

    def close(self) -> None:
        """Release network resources. Optional."""
        return None
