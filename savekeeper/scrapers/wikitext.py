"""Wikitext parser — extract save-location templates from PCGamingWiki markup.

PCGamingWiki documents save locations with templates such as::

    {{Game data|
    {{Game data/saves|Windows|{{p|userprofile}}\\Documents\\My Games\\Foo}}
    }}

Path placeholders (``{{P|...}}``) are rewritten into the vocabulary of
:mod:`savekeeper.core.path_expander`. Parsing never raises: markup without the
expected structure yields an empty list.
"""

from __future__ import annotations

import re

from savekeeper.core import path_expander as px

SECTION_OPEN = "{{Game data/saves"
SECTION_CLOSE = "}}"
PATH_MARKER = "{{P|"
TEMPLATE_OPEN = "{{"
SEGMENT_DELIMITER = "|"

# Wiki placeholder name → expander token
PLACEHOLDERS: dict[str, str] = {
    "userprofile": px.USERPROFILE,
    "appdata": px.APPDATA,
    "localappdata": px.LOCALAPPDATA,
    "game": px.GAME_DIR,
    "documents": px.USERPROFILE + "\\Documents",
    "programfiles": px.PROGRAMFILES,
    "linuxhome": px.HOME_TILDE,
    "osxhome": px.HOME_TILDE,
    "xdgdatahome": px.XDG_DATA_HOME,
    "xdgconfighome": px.XDG_CONFIG_HOME,
}

# Tokens that mark a segment as a path after substitution
_PATH_TOKENS = tuple(
    {px.USERPROFILE, px.APPDATA, px.LOCALAPPDATA, px.GAME_DIR, px.PROGRAMFILES,
     px.HOME_TILDE, px.XDG_DATA_HOME, px.XDG_CONFIG_HOME}
)

# Literal fallbacks searched across the whole page
COMMON_PATTERNS: list[str] = [
    "{{P|userprofile}}\\Documents\\My Games\\",
    "{{P|appdata}}\\",
    "{{P|localappdata}}\\",
    "{{P|userprofile}}\\Saved Games\\",
]
FALLBACK_WINDOW = 100

_PLACEHOLDER_RE = re.compile(r"\{\{\s*p\s*\|\s*([a-z0-9_]+)\s*\}\}", re.IGNORECASE)


def substitute_placeholders(text: str) -> str:
    """Replace known ``{{P|name}}`` templates; unknown ones stay untouched."""

    def _sub(match: re.Match[str]) -> str:
        return PLACEHOLDERS.get(match.group(1).lower(), match.group(0))

    return _PLACEHOLDER_RE.sub(_sub, text)


def clean_path(path: str) -> str:
    """Strip residual template markup, whitespace and quotes."""
    path = substitute_placeholders(path)
    path = path.replace("{{", "").replace("}}", "").replace("|", "")
    return path.strip().strip("\"'").strip()


def extract_paths_from_line(line: str) -> list[str]:
    """Path segments of one template line, placeholders substituted."""
    converted = substitute_placeholders(line)
    paths: list[str] = []
    for part in converted.split(SEGMENT_DELIMITER):
        part = part.strip()
        if TEMPLATE_OPEN in part:
            continue
        if part.startswith(px.HOME_TILDE) or any(
            token in part for token in _PATH_TOKENS if token != px.HOME_TILDE
        ):
            paths.append(part)
    return paths


def _extract_window(markup: str, pattern: str) -> str:
    """First line of the text window that starts at ``pattern``."""
    match = re.search(re.escape(pattern), markup, re.IGNORECASE)
    if match is None:
        return ""
    window = markup[match.start() : match.start() + len(pattern) + FALLBACK_WINDOW]
    return clean_path(window.splitlines()[0]) if window else ""


def _dedupe(paths: list[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for path in paths:
        cleaned = clean_path(path)
        if cleaned and cleaned not in seen:
            seen.add(cleaned)
            result.append(cleaned)
    return result


def parse_save_templates(markup: str) -> list[str]:
    """
    Extract save-path templates from a page's wikitext.

    Section scan first; the common-pattern fallback only runs when the
    section scan found nothing. Output is cleaned and deduplicated in
    first-seen order.
    """
    found: list[str] = []
    in_section = False
    marker = PATH_MARKER.lower()

    for raw_line in markup.splitlines():
        line = raw_line.strip()

        if SECTION_OPEN.lower() in line.lower():
            in_section = True
        elif in_section and line.startswith(SECTION_CLOSE):
            in_section = False
            continue

        if in_section and marker in line.lower():
            found.extend(extract_paths_from_line(line))

    if not found:
        for pattern in COMMON_PATTERNS:
            path = _extract_window(markup, pattern)
            if path:
                found.append(path)

    return _dedupe(found)
