"""Path expander — substitute environment placeholders in save-path templates."""

from __future__ import annotations

import os
import re
from typing import Mapping

# Placeholder tokens shared with the wikitext parser
USERPROFILE = "%USERPROFILE%"
APPDATA = "%APPDATA%"
LOCALAPPDATA = "%LOCALAPPDATA%"
PROGRAMFILES = "%PROGRAMFILES%"
PROGRAMFILES_X86 = "%PROGRAMFILES(X86)%"
GAME_DIR = "%GAME_DIR%"  # No environment source; always left verbatim
HOME = "$HOME"
HOME_TILDE = "~"
XDG_CONFIG_HOME = "$XDG_CONFIG_HOME"
XDG_DATA_HOME = "$XDG_DATA_HOME"

# Windows tokens are always substituted, an absent variable becomes "".
_WINDOWS_PLACEHOLDERS = {
    USERPROFILE: "USERPROFILE",
    APPDATA: "APPDATA",
    LOCALAPPDATA: "LOCALAPPDATA",
    PROGRAMFILES: "PROGRAMFILES",
    PROGRAMFILES_X86: "PROGRAMFILES(X86)",
}

# POSIX tokens are only substituted when the variable is set and non-empty.
_POSIX_PLACEHOLDERS = {
    HOME: "HOME",
    XDG_CONFIG_HOME: "XDG_CONFIG_HOME",
    XDG_DATA_HOME: "XDG_DATA_HOME",
}

# "~" only counts as a home token at the start of a path
_TILDE_RE = re.compile(r"^~(?=$|[\\/])")
_UNKNOWN_TOKEN_RE = re.compile(r"%[A-Za-z_][A-Za-z0-9_()]*%")


def expand(path: str, env: Mapping[str, str] | None = None) -> str:
    """Replace known placeholders in ``path`` with values from ``env``.

    Unknown placeholders are left as-is. Never raises.
    """
    env = os.environ if env is None else env
    expanded = path
    for token, var in _WINDOWS_PLACEHOLDERS.items():
        expanded = expanded.replace(token, env.get(var, ""))

    home = env.get("HOME", "")
    if home:
        expanded = _TILDE_RE.sub(lambda _m: home, expanded)

    for token, var in _POSIX_PLACEHOLDERS.items():
        value = env.get(var, "")
        if value:
            expanded = expanded.replace(token, value)

    return expanded


def missing_placeholders(path: str, env: Mapping[str, str] | None = None) -> list[str]:
    """Placeholders in ``path`` that would not expand to a real value.

    Covers known tokens whose variable is empty and unknown ``%TOKEN%``
    placeholders such as ``%GAME_DIR%``.
    """
    env = os.environ if env is None else env
    missing: list[str] = []
    for token, var in _WINDOWS_PLACEHOLDERS.items():
        if token in path and not env.get(var):
            missing.append(token)
    for token, var in _POSIX_PLACEHOLDERS.items():
        if token in path and not env.get(var):
            missing.append(token)
    if _TILDE_RE.match(path) and not env.get("HOME"):
        missing.append(HOME_TILDE)

    known = set(_WINDOWS_PLACEHOLDERS)
    for match in _UNKNOWN_TOKEN_RE.finditer(path):
        token = match.group(0)
        if token not in known and token not in missing:
            missing.append(token)
    return missing
