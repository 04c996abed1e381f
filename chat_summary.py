"""Print a usage summary of the recorded chat analytics and dump it to CSV/JSON.

Usage: python chat_summary.py [--store-dir DIR] [--output-dir DIR] [--reset]
"""

from __future__ import annotations

import argparse
import csv
import json
import logging
import os
import sys
from typing import Any

from analytics import AnalyticsEngine, to_payload
from store import DEFAULT_STORE_DIR, JsonFileStore

logger = logging.getLogger(__name__)


def _peak(buckets: list[dict], label: str) -> dict | None:
    """Return the busiest bucket (earliest on ties), or None if all are zero."""
    best = max(buckets, key=lambda b: b["count"], default=None)
    if best is None or best["count"] == 0:
        return None
    return {label: best[label], "count": best["count"]}


def save_analytics_files(snapshot: dict[str, Any], output_dir: str = "chat_analytics_report") -> None:
    """Write CSV/JSON files describing *snapshot* to output_dir.

    Creates the output directory if it doesn't exist and writes:
    summary.json (full persisted payload), popular_topics.csv,
    hourly_activity.csv, weekly_activity.csv and message_history.csv.

    Args:
        snapshot: Aggregate state from ``AnalyticsEngine.snapshot``.
        output_dir: Directory path for output files.

    Raises:
        OSError: If the directory or a file cannot be written.
    """
    os.makedirs(output_dir, exist_ok=True)
    payload = to_payload(snapshot)

    with open(f"{output_dir}/summary.json", "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)

    with open(f"{output_dir}/popular_topics.csv", "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=["topic", "count"])
        writer.writeheader()
        writer.writerows(payload["popularTopics"])

    with open(f"{output_dir}/hourly_activity.csv", "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=["hour", "count"])
        writer.writeheader()
        writer.writerows(payload["hourlyActivity"])

    with open(f"{output_dir}/weekly_activity.csv", "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=["day", "count"])
        writer.writeheader()
        writer.writerows(payload["weeklyActivity"])

    with open(f"{output_dir}/message_history.csv", "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(
            f, fieldnames=["timestamp", "sender", "responseTime", "text"], restval=""
        )
        writer.writeheader()
        writer.writerows(payload["messageHistory"])

    logger.info("Wrote analytics files to %s", output_dir)


def print_summary_report(snapshot: dict[str, Any]) -> None:
    """Print a human-readable summary of *snapshot* to stdout.

    Includes totals, response time, activity peaks and the topic ranking.
    """
    print(f"\n{'=' * 60}")
    print("Chat Usage Summary")
    print(f"{'=' * 60}")
    print(f"Total Messages: {snapshot['total_messages']:,}")
    print(f"User Messages: {snapshot['user_messages']:,}")
    print(f"Bot Messages: {snapshot['bot_messages']:,}")
    print(f"Average Response Time: {snapshot['average_response_time']:.2f}s")
    print(f"Active Days: {snapshot['active_days']:,}")
    print(f"Messages per Day: {snapshot['messages_per_day']:.2f}")

    history = snapshot["message_history"]
    if history:
        print(f"First Message: {history[0]['timestamp'].isoformat(sep=' ', timespec='seconds')}")
        print(f"Last Message: {history[-1]['timestamp'].isoformat(sep=' ', timespec='seconds')}")

    peak_hour = _peak(snapshot["hourly_activity"], "hour")
    peak_day = _peak(snapshot["weekly_activity"], "day")
    if peak_hour and peak_day:
        print(f"Busiest Hour: {peak_hour['hour']:02d}:00 ({peak_hour['count']:,} messages)")
        print(f"Busiest Day: {peak_day['day']} ({peak_day['count']:,} messages)")

    topics = snapshot["popular_topics"]
    if topics:
        print(f"\n{'=' * 60}")
        print("Popular Topics")
        print(f"{'=' * 60}")
        print(f"{'Rank':<6} {'Topic':<24} {'Messages':>8}")
        print(f"{'-' * 40}")
        for i, entry in enumerate(topics, 1):
            print(f"{i:<6} {entry['topic']:<24} {entry['count']:>8,}")

    print(f"{'=' * 60}")


def main(argv: list[str] | None = None) -> None:
    """CLI entry point: print the summary and optionally write report files."""
    parser = argparse.ArgumentParser(description='Summarise recorded chat analytics')
    parser.add_argument('--store-dir', default=str(DEFAULT_STORE_DIR),
                        help='Directory of the analytics snapshot store')
    parser.add_argument('--output-dir', '-o',
                        help='Write CSV/JSON report files to this directory')
    parser.add_argument('--reset', action='store_true',
                        help='Clear all recorded analytics after printing the summary')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    engine = AnalyticsEngine.create(JsonFileStore(args.store_dir))
    snapshot = engine.snapshot()
    print_summary_report(snapshot)

    if args.output_dir:
        try:
            save_analytics_files(snapshot, args.output_dir)
        except OSError as e:
            print(f"Error: failed to write report files: {e}", file=sys.stderr)
            sys.exit(1)
        print(f"\nAnalytics data has been saved to the '{args.output_dir}' directory.")

    if args.reset:
        engine.reset()
        print("Analytics have been reset.")


if __name__ == "__main__":
    main()
