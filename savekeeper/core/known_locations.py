"""Well-known save roots per distribution platform and known applications."""

from __future__ import annotations

from savekeeper.models.application import ApplicationRecord, Platform

# Roots walked by the scanner, keyed by the platform tag given to discoveries
COMMON_SAVE_ROOTS: dict[str, list[str]] = {
    Platform.STEAM: [
        "%USERPROFILE%/Documents/My Games",
        "%APPDATA%",
        "%LOCALAPPDATA%",
        "%USERPROFILE%/Saved Games",
        "C:/Program Files (x86)/Steam/userdata",
        "C:/Program Files/Steam/userdata",
    ],
    Platform.EPIC: [
        "%LOCALAPPDATA%/EpicGamesLauncher/Saved",
        "%USERPROFILE%/Documents/My Games",
    ],
    Platform.UPLAY: [
        "%USERPROFILE%/Documents/My Games",
        "%APPDATA%/Ubisoft",
    ],
    Platform.ORIGIN: [
        "%USERPROFILE%/Documents/Electronic Arts",
        "%LOCALAPPDATA%/Electronic Arts",
    ],
    Platform.GOG: [
        "%USERPROFILE%/Documents/My Games",
        "%APPDATA%/GOG.com",
    ],
    Platform.XBOX: [
        "%LOCALAPPDATA%/Packages",
        "%USERPROFILE%/Documents/My Games",
    ],
}


def _known(
    app_id: str,
    name: str,
    platform: str,
    save_path: str,
    patterns: list[str],
    publisher: str,
    genre: str,
) -> ApplicationRecord:
    return ApplicationRecord(
        id=app_id,
        name=name,
        platform=platform,
        save_paths=[save_path],
        patterns=patterns,
        metadata={"publisher": publisher, "genre": genre},
    )


KNOWN_APPLICATIONS: dict[str, ApplicationRecord] = {
    r.id: r
    for r in (
        _known("elden-ring", "Elden Ring", Platform.STEAM,
               "%APPDATA%/EldenRing", ["*.sl2"], "FromSoftware", "Action RPG"),
        _known("dark-souls-3", "Dark Souls III", Platform.STEAM,
               "%APPDATA%/DarkSoulsIII", ["*.sl2"], "FromSoftware", "Action RPG"),
        _known("cyberpunk-2077", "Cyberpunk 2077", Platform.MULTIPLE,
               "%USERPROFILE%/Saved Games/CD Projekt Red/Cyberpunk 2077",
               ["*.dat", "*.json"], "CD Projekt RED", "Action RPG"),
        _known("witcher-3", "The Witcher 3: Wild Hunt", Platform.MULTIPLE,
               "%USERPROFILE%/Documents/The Witcher 3", ["*.sav"],
               "CD Projekt RED", "Action RPG"),
        _known("skyrim-se", "The Elder Scrolls V: Skyrim Special Edition", Platform.STEAM,
               "%USERPROFILE%/Documents/My Games/Skyrim Special Edition",
               ["*.ess", "*.skse"], "Bethesda", "Action RPG"),
        _known("fallout-4", "Fallout 4", Platform.STEAM,
               "%USERPROFILE%/Documents/My Games/Fallout4", ["*.fos", "*.f4se"],
               "Bethesda", "Action RPG"),
        _known("minecraft", "Minecraft", Platform.MULTIPLE,
               "%APPDATA%/.minecraft/saves", ["level.dat", "*.mca", "*.dat"],
               "Mojang Studios", "Sandbox"),
    )
}
