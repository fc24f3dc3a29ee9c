"""
Print dashboard stats for all datasets or one dataset.

Usage:
    python -m scripts.show_dashboard
    python -m scripts.show_dashboard --dataset ja-basics --limit 5
"""

import argparse
import sys

from memory_core import config
from memory_core.analytics import build_dashboard, retention_histogram, summarize_reviews
from memory_core.store import EntityStore


def print_dashboard(store: EntityStore, dataset_id=None, limit=10):
    stats = build_dashboard(store, dataset_id, limit)

    print("=" * 60)
    print(f"Dashboard: {dataset_id or 'all datasets'}")
    print("=" * 60)
    print(f"Due now:   {stats.due.overdue}")
    print(f"Due today: {stats.due.today}")
    if stats.avg_retrievability is None:
        print("Avg retrievability: -")
    else:
        print(f"Avg retrievability: {stats.avg_retrievability:.1%}")

    if stats.due_by_dataset and dataset_id is None:
        print("\nDue by dataset:")
        for ds_id, count in sorted(stats.due_by_dataset.items()):
            print(f"  {ds_id}: {count}")

    print("\nTop confusions:")
    if not stats.top_confusions:
        print("  (none)")
    for row in stats.top_confusions:
        print(f"  {row.count:>3}  {row.label_a}  <->  {row.label_b}")

    print("\nRetention:")
    for label, count in retention_histogram(store, dataset_id).items():
        print(f"  {label:>7}: {count}")

    summary = summarize_reviews(store, dataset_id)
    if not summary.empty:
        print("\nReviews:")
        print(summary.to_string(index=False))


def main(argv=None):
    parser = argparse.ArgumentParser(description="Show dashboard stats")
    parser.add_argument("--dataset", default=None, help="Limit to one dataset id")
    parser.add_argument("--limit", type=int, default=10, help="Number of confusion pairs")
    parser.add_argument("--database-url", default=None, help="SQLAlchemy URL (default from environment)")
    args = parser.parse_args(argv)

    config.configure_logging()
    with EntityStore(args.database_url) as store:
        print_dashboard(store, args.dataset, args.limit)
    return 0


if __name__ == "__main__":
    sys.exit(main())
