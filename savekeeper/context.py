"""Application context — service container for dependency injection."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Mapping

if TYPE_CHECKING:
    from savekeeper.config import Config
    from savekeeper.core.backup import ArchiveEngine
    from savekeeper.core.classifier import SaveDirectoryClassifier
    from savekeeper.core.scanner import Scanner
    from savekeeper.data.catalog import Catalog
    from savekeeper.scrapers.base import KnowledgeSource


@dataclass
class AppContext:
    """
    Central service container.

    The catalog and the policy (inside ``config``) are shared mutable
    state; ``lock`` is the single point callers serialize on.
    """

    config: Config
    env: Mapping[str, str]
    catalog: Catalog
    classifier: SaveDirectoryClassifier
    scanner: Scanner
    archive: ArchiveEngine
    knowledge_source: KnowledgeSource
    lock: threading.RLock = field(default_factory=threading.RLock)
