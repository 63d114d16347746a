"""PCGamingWiki provider — Cargo queries and wikitext save-location parsing."""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from savekeeper.errors import NotFoundError, TransportError
from savekeeper.models.search_result import SearchResult
from savekeeper.scrapers.base import KnowledgeSource
from savekeeper.scrapers.wikitext import parse_save_templates

DEFAULT_BASE_URL = "https://www.pcgamingwiki.com/w/api.php"
DEFAULT_TIMEOUT = 10
DEFAULT_LIMIT = 10

_CARGO_FIELDS = (
    "Infobox_game._pageName=Page,"
    "Infobox_game._pageID=PageID,"
    "Infobox_game.Steam_AppID,"
    "Infobox_game.Released,"
    "Infobox_game.Cover_URL"
)


class PCGamingWikiClient(KnowledgeSource):
    """PCGamingWiki knowledge source over the MediaWiki API."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        limit: int = DEFAULT_LIMIT,
        client: httpx.Client | None = None,
    ) -> None:
        self._base_url = base_url
        self._limit = limit
        self._client = client or httpx.Client(
            timeout=timeout,
            headers={"User-Agent": "SaveKeeper/1.0"},
        )

    @property
    def name(self) -> str:
        return "pcgw"

    @property
    def display_name(self) -> str:
        return "PCGamingWiki"

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    @staticmethod
    def _clean_query(raw: str) -> str:
        """Escape a title for embedding in a quoted Cargo ``where`` clause."""
        return raw.strip().replace("\\", "\\\\").replace('"', '\\"')

    def _api_request(self, params: dict[str, Any]) -> dict[str, Any]:
        """GET the API and decode the JSON body."""
        try:
            resp = self._client.get(self._base_url, params=params)
        except httpx.HTTPError as e:
            raise TransportError(f"PCGamingWiki request failed: {e}") from e

        if resp.status_code != 200:
            raise TransportError(f"PCGamingWiki returned HTTP {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as e:
            raise TransportError(f"Malformed PCGamingWiki response: {e}") from e
        if not isinstance(data, dict):
            raise TransportError("Malformed PCGamingWiki response: expected a JSON object")
        return data

    def _cargo_query(self, where: str, limit: int | None = None) -> list[dict[str, Any]]:
        params: dict[str, Any] = {
            "action": "cargoquery",
            "tables": "Infobox_game",
            "fields": _CARGO_FIELDS,
            "where": where,
            "format": "json",
        }
        if limit:
            params["limit"] = limit
        data = self._api_request(params)

        query = data.get("query")
        rows = query.get("cargoquery") if isinstance(query, dict) else None
        if rows is None:
            if "error" in data:
                raise TransportError(f"PCGamingWiki error: {data['error']}")
            return []
        if not isinstance(rows, list):
            raise TransportError("Malformed PCGamingWiki response: cargoquery is not a list")
        return [row.get("title") or {} for row in rows if isinstance(row, dict)]

    @staticmethod
    def _parse_row(row: dict[str, Any]) -> SearchResult:
        return SearchResult(
            name=str(row.get("Page") or ""),
            page_id=str(row.get("PageID") or ""),
            steam_app_id=str(row.get("Steam AppID") or ""),
            release_date=str(row.get("Released") or ""),
            cover_url=str(row.get("Cover URL") or ""),
        )

    def _attach_save_paths(self, result: SearchResult) -> SearchResult:
        """Resolve save paths for a candidate; a failed fetch leaves it empty."""
        if result.page_id:
            try:
                result.save_paths = self.resolve_save_paths(result.page_id)
            except TransportError as e:
                logger.warning(f"Could not fetch save data for {result.name}: {e}")
        result.mark_unavailable()
        return result

    def search(self, query: str) -> list[SearchResult]:
        """Find entries whose title contains ``query`` and resolve their save paths."""
        safe = self._clean_query(query)
        rows = self._cargo_query(f'Infobox_game._pageName LIKE "%{safe}%"', self._limit)
        results = [self._attach_save_paths(self._parse_row(row)) for row in rows]
        logger.info(f"PCGamingWiki search '{query}': {len(results)} result(s)")
        return results

    def get_by_steam_id(self, steam_app_id: str) -> SearchResult:
        """Fetch the entry that lists ``steam_app_id``."""
        safe = self._clean_query(steam_app_id)
        rows = self._cargo_query(f'Infobox_game.Steam_AppID HOLDS "{safe}"')
        if not rows:
            raise NotFoundError(f"No PCGamingWiki entry for Steam App ID {steam_app_id}")
        return self._attach_save_paths(self._parse_row(rows[0]))

    def resolve_save_paths(self, page_id: str) -> list[str]:
        """Fetch a page's wikitext and extract its save-path templates."""
        data = self._api_request(
            {
                "action": "parse",
                "format": "json",
                "pageid": page_id,
                "prop": "wikitext",
            }
        )
        parse = data.get("parse")
        if not isinstance(parse, dict):
            if "error" in data:
                raise TransportError(f"PCGamingWiki error: {data['error']}")
            raise TransportError("Malformed PCGamingWiki response: missing 'parse'")

        wikitext = parse.get("wikitext") or {}
        content = wikitext.get("*", "") if isinstance(wikitext, dict) else ""
        paths = parse_save_templates(content if isinstance(content, str) else "")
        logger.debug(f"Page {page_id}: {len(paths)} save path(s)")
        return paths
