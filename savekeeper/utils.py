"""Shared utility functions."""

from __future__ import annotations

import re
import time

_ID_ILLEGAL_RE = re.compile(r"[^a-z0-9\-_]")
_SEPARATOR_RE = re.compile(r"[\\/]")


def _last_component(text: str) -> str:
    parts = [p for p in _SEPARATOR_RE.split(text.strip()) if p]
    return parts[-1] if parts else ""


def make_app_id(text: str) -> str:
    """Stable slug from a directory path or an application name."""
    name = _last_component(text)
    app_id = _ID_ILLEGAL_RE.sub("-", name.lower()).strip("-")
    if not app_id:
        return f"unknown-app-{int(time.time())}"
    return app_id


def infer_name(path: str) -> str:
    """Human-readable name from a save directory path."""
    name = _last_component(path).replace("_", " ").replace("-", " ")
    words = [w[:1].upper() + w[1:].lower() for w in name.split()]
    return " ".join(words) or "Unknown Application"


def format_size(size_bytes: int) -> str:
    """Format byte count to human-readable string."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_bytes / (1024 * 1024 * 1024):.2f} GB"
