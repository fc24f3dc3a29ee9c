"""
Import a dataset JSON file into the memory store.

An existing dataset with the same datasetId is replaced, including its
study history.

Usage:
    python -m scripts.import_dataset path/to/dataset.json
    python -m scripts.import_dataset a.json b.json --database-url sqlite:///other.db
"""

import argparse
import logging
import sys
from pathlib import Path

from memory_core import config
from memory_core.errors import MemoryAppError
from memory_core.store import EntityStore

logger = logging.getLogger(__name__)


def import_files(store: EntityStore, paths: list[Path]) -> int:
    """Import each file, returning the number of failures."""
    failures = 0
    for path in paths:
        try:
            summary = store.import_dataset(path.read_bytes())
        except (OSError, MemoryAppError) as e:
            logger.error("Failed to import %s: %s", path, e)
            failures += 1
            continue
        print(f"✓ {path.name}: {summary.dataset_id} ({summary.card_count} cards)")
    return failures


def main(argv=None):
    parser = argparse.ArgumentParser(description="Import dataset JSON files")
    parser.add_argument("paths", nargs="+", type=Path, help="Dataset JSON files")
    parser.add_argument("--database-url", default=None, help="SQLAlchemy URL (default from environment)")
    args = parser.parse_args(argv)

    config.configure_logging()
    with EntityStore(args.database_url) as store:
        failures = import_files(store, args.paths)

    if failures:
        print(f"\n✗ {failures} of {len(args.paths)} files failed")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
