"""Command-line entry point — wires services and dispatches subcommands.

Usage:
    savekeeper scan
    savekeeper list
    savekeeper backup <id>
    savekeeper add <name> <path> [--pattern PATTERN ...]
    savekeeper search <name>
    savekeeper batch <name> [<name> ...] [--dest DIR]
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import Mapping

from loguru import logger

from savekeeper.config import Config, get_config
from savekeeper.context import AppContext
from savekeeper.core.backup import ArchiveEngine
from savekeeper.core.classifier import SaveDirectoryClassifier
from savekeeper.core.save_manager import SaveManager
from savekeeper.core.scanner import Scanner
from savekeeper.data.catalog import Catalog
from savekeeper.errors import SaveKeeperError
from savekeeper.logger import setup_logger
from savekeeper.scrapers.pcgamingwiki import PCGamingWikiClient
from savekeeper.utils import format_size


def create_context(
    config: Config | None = None, env: Mapping[str, str] | None = None
) -> AppContext:
    """Wire all services and return an AppContext."""
    config = config or get_config()
    env = os.environ if env is None else env

    # Data
    catalog = Catalog(config.data_dir, config, env)
    catalog.load()

    # Core services
    classifier = SaveDirectoryClassifier()
    scanner = Scanner(config, catalog, classifier, env)
    archive = ArchiveEngine(config, catalog)

    # Knowledge source
    pcgw = config.pcgw_config
    knowledge_source = PCGamingWikiClient(
        base_url=pcgw.get("base_url", "https://www.pcgamingwiki.com/w/api.php"),
        timeout=float(pcgw.get("timeout", 10)),
        limit=int(pcgw.get("search_limit", 10)),
    )

    return AppContext(
        config=config,
        env=env,
        catalog=catalog,
        classifier=classifier,
        scanner=scanner,
        archive=archive,
        knowledge_source=knowledge_source,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="savekeeper", description="Back up application save data.")
    parser.add_argument("--data-dir", help="Configuration and catalog directory")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug console output")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("scan", help="Discover applications under well-known save roots")
    sub.add_parser("list", help="List tracked applications")

    p = sub.add_parser("backup", help="Back up one application")
    p.add_argument("app_id")

    p = sub.add_parser("history", help="List existing backups of an application")
    p.add_argument("app_id")

    p = sub.add_parser("add", help="Track a custom save location")
    p.add_argument("name")
    p.add_argument("path")
    p.add_argument("--pattern", action="append", dest="patterns", help="File glob (repeatable)")

    p = sub.add_parser("search", help="Search PCGamingWiki for save locations")
    p.add_argument("name")

    p = sub.add_parser("validate", help="Check that an application's save paths exist")
    p.add_argument("app_id")

    p = sub.add_parser("remove", help="Stop tracking an application")
    p.add_argument("app_id")

    p = sub.add_parser("batch", help="Look up and back up several applications by name")
    p.add_argument("names", nargs="+")
    p.add_argument("--dest", help="Backup root for this batch only")

    p = sub.add_parser("root", help="Show or set the backup root directory")
    p.add_argument("path", nargs="?")

    return parser


def _run(manager: SaveManager, args: argparse.Namespace) -> int:
    if args.command == "scan":
        outcome = manager.scan_all()
        print(f"{outcome.total} application(s), {len(outcome.new_ids)} new, "
              f"{len(outcome.errors)} error(s) in {outcome.elapsed:.1f}s")
        for error in outcome.errors:
            print(f"  ! {error}")

    elif args.command == "list":
        for record in manager.list_applications():
            last = record.last_backup.strftime("%Y-%m-%d %H:%M") if record.last_backup else "never"
            print(f"{record.id:<32} {record.name:<40} {record.file_count:>6} files "
                  f"{format_size(record.total_size):>10}  last backup: {last}")

    elif args.command == "backup":
        print(manager.create_backup(args.app_id))

    elif args.command == "history":
        for entry in manager.list_backups(args.app_id):
            print(f"{entry.created:%Y-%m-%d %H:%M:%S}  {format_size(entry.size):>10}  {entry.path}")

    elif args.command == "add":
        record = manager.add_custom_application(args.name, args.path, args.patterns)
        print(f"Added {record.id} ({record.file_count} files)")

    elif args.command == "search":
        for result in manager.search_knowledge_source(args.name):
            print(f"{result.name} [page {result.page_id}]")
            if result.available:
                for path in result.save_paths:
                    print(f"    {path}")
            else:
                print(f"    {result.reason}")

    elif args.command == "validate":
        valid, invalid = manager.validate_paths(args.app_id)
        for path in valid:
            print(f"  ok       {path}")
        for path in invalid:
            print(f"  missing  {path}")
        return 0 if not invalid else 1

    elif args.command == "remove":
        manager.remove_application(args.app_id)

    elif args.command == "batch":
        result = manager.batch_create_backups(args.names, args.dest)
        print(f"{result.success_count}/{result.total} backed up into {result.backup_root}")
        for error in result.errors:
            print(f"  ! {error}")
        return 0 if not result.error_count else 1

    elif args.command == "root":
        print(manager.set_backup_root(args.path) if args.path else manager.get_backup_root())

    return 0


def main(argv: list[str] | None = None) -> int:
    """Application entry point."""
    args = _build_parser().parse_args(argv)
    config = Config(Path(args.data_dir)) if args.data_dir else get_config()

    # Logger
    setup_logger(config.data_dir / "logs", verbose=args.verbose)

    ctx = create_context(config)
    manager = SaveManager(ctx)
    try:
        return _run(manager, args)
    except SaveKeeperError as e:
        logger.error(str(e))
        return 1
    finally:
        ctx.knowledge_source.close()


if __name__ == "__main__":
    sys.exit(main())
