"""
Reset the memory database.

DANGEROUS: This deletes all datasets, cards and review history!
Only use when you want to start fresh.

Usage:
    python -m scripts.maintenance.reset_memory_db
"""

import argparse
import sys

from memory_core import config
from memory_core.store import EntityStore


def main(argv=None):
    parser = argparse.ArgumentParser(description="Delete all data and recreate tables")
    parser.add_argument("--database-url", default=None, help="SQLAlchemy URL (default from environment)")
    args = parser.parse_args(argv)

    config.configure_logging()

    print("=" * 60)
    print("WARNING: Reset Memory Database")
    print("=" * 60)
    print()
    print("This will DELETE:")
    print("  - All datasets and cards")
    print("  - All card states and review history")
    print("  - All confusion counters and settings")
    print()

    response = input("Are you sure you want to reset? (type 'yes' to confirm): ")

    if response.lower() != "yes":
        print("\nCancelled. No changes made.")
        return 0

    print("\nResetting database...")
    with EntityStore(args.database_url) as store:
        store.reset()
    print("✓ Database reset complete!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
