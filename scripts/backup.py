"""
Export or restore a full backup of the memory store.

A restore replaces every table. Only version 1 backups are accepted.

Usage:
    python -m scripts.backup export backup.json
    python -m scripts.backup restore backup.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from memory_core import config
from memory_core.errors import MemoryAppError
from memory_core.store import EntityStore

logger = logging.getLogger(__name__)


def export_backup(store: EntityStore, path: Path) -> None:
    backup = store.export_all()
    path.write_text(json.dumps(backup, ensure_ascii=False, indent=2), encoding="utf-8")
    counts = ", ".join(f"{kind}={len(backup[kind])}" for kind in ("datasets", "cards", "reviews"))
    print(f"✓ Exported to {path} ({counts})")


def restore_backup(store: EntityStore, path: Path) -> None:
    store.import_all(path.read_bytes())
    print(f"✓ Restored from {path}")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Export or restore a backup")
    parser.add_argument("command", choices=["export", "restore"])
    parser.add_argument("path", type=Path, help="Backup JSON file")
    parser.add_argument("--database-url", default=None, help="SQLAlchemy URL (default from environment)")
    args = parser.parse_args(argv)

    config.configure_logging()
    try:
        with EntityStore(args.database_url) as store:
            if args.command == "export":
                export_backup(store, args.path)
            else:
                restore_backup(store, args.path)
    except (OSError, MemoryAppError) as e:
        logger.error("Backup %s failed: %s", args.command, e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
