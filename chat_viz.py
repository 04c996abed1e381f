"""Render activity and topic charts from the recorded chat analytics."""

from __future__ import annotations

import argparse
import logging
import os
from typing import Any

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from analytics import AnalyticsEngine
from store import DEFAULT_STORE_DIR, JsonFileStore

logger = logging.getLogger(__name__)


def build_frames(snapshot: dict[str, Any]) -> dict[str, pd.DataFrame]:
    """Turn a snapshot into DataFrames for charting.

    Returns:
        Dict with keys:
            - hourly: columns hour, count (24 rows).
            - weekly: columns day, count (7 rows, Mon..Sun).
            - topics: columns topic, count, share (percent of classified
              messages), sorted as in the snapshot.
            - daily: columns date, messages (one row per calendar day with
              at least one message), plus a 7-day rolling average.
    """
    hourly = pd.DataFrame(snapshot["hourly_activity"], columns=["hour", "count"])
    weekly = pd.DataFrame(snapshot["weekly_activity"], columns=["day", "count"])

    topics = pd.DataFrame(snapshot["popular_topics"], columns=["topic", "count"])
    total = topics["count"].sum()
    topics["share"] = (topics["count"] / total * 100).round(1) if total else 0.0

    history = pd.DataFrame(
        [m["timestamp"] for m in snapshot["message_history"]], columns=["timestamp"]
    )
    if history.empty:
        daily = pd.DataFrame(columns=["date", "messages", "messages_7_day_avg"])
    else:
        history["timestamp"] = pd.to_datetime(history["timestamp"])
        daily = (
            history.groupby(history["timestamp"].dt.date)
            .size()
            .rename("messages")
            .rename_axis("date")
            .reset_index()
        )
        daily["messages_7_day_avg"] = daily["messages"].rolling(window=7, min_periods=1).mean()

    return {"hourly": hourly, "weekly": weekly, "topics": topics, "daily": daily}


def render_charts(snapshot: dict[str, Any], output_dir: str = "chat_analytics_charts") -> list[str]:
    """Save PNG charts for *snapshot* into output_dir.

    Always writes hourly_activity.png and weekly_activity.png; writes
    popular_topics.png and daily_messages.png only when there is data
    for them.

    Returns:
        Paths of the files written.
    """
    os.makedirs(output_dir, exist_ok=True)
    frames = build_frames(snapshot)
    written: list[str] = []

    plt.figure(figsize=(15, 6))
    sns.barplot(data=frames["hourly"], x="hour", y="count", color="skyblue")
    plt.title('Messages by Hour of Day', fontsize=14, pad=20)
    plt.xlabel('Hour', fontsize=12)
    plt.ylabel('Messages', fontsize=12)
    plt.grid(True, axis='y', alpha=0.3)
    plt.tight_layout()
    path = f"{output_dir}/hourly_activity.png"
    plt.savefig(path, dpi=150, bbox_inches='tight')
    plt.close()
    written.append(path)

    plt.figure(figsize=(10, 6))
    sns.barplot(data=frames["weekly"], x="day", y="count", color="lightgreen")
    plt.title('Messages by Day of Week', fontsize=14, pad=20)
    plt.xlabel('Day', fontsize=12)
    plt.ylabel('Messages', fontsize=12)
    plt.grid(True, axis='y', alpha=0.3)
    plt.tight_layout()
    path = f"{output_dir}/weekly_activity.png"
    plt.savefig(path, dpi=150, bbox_inches='tight')
    plt.close()
    written.append(path)

    if not frames["topics"].empty:
        plt.figure(figsize=(10, 6))
        sns.barplot(data=frames["topics"], x="count", y="topic", color="lightcoral")
        plt.title('Popular Topics', fontsize=14, pad=20)
        plt.xlabel('Messages', fontsize=12)
        plt.ylabel('')
        plt.tight_layout()
        path = f"{output_dir}/popular_topics.png"
        plt.savefig(path, dpi=150, bbox_inches='tight')
        plt.close()
        written.append(path)

    daily = frames["daily"]
    if not daily.empty:
        plt.figure(figsize=(15, 8))
        plt.bar(daily['date'], daily['messages'], alpha=0.5, color='skyblue', label='Daily Messages')
        plt.plot(daily['date'], daily['messages_7_day_avg'], color='red', linewidth=2, label='7-day Average')
        plt.title('Daily Messages with Rolling Average', fontsize=14, pad=20)
        plt.xlabel('Date', fontsize=12)
        plt.ylabel('Messages', fontsize=12)
        plt.grid(True, alpha=0.3)
        plt.legend()
        plt.xticks(rotation=45)
        plt.tight_layout()
        path = f"{output_dir}/daily_messages.png"
        plt.savefig(path, dpi=150, bbox_inches='tight')
        plt.close()
        written.append(path)

    logger.info("Rendered %d charts into %s", len(written), output_dir)
    return written


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for rendering analytics charts."""
    parser = argparse.ArgumentParser(description='Render chat analytics charts')
    parser.add_argument('--store-dir', default=str(DEFAULT_STORE_DIR),
                        help='Directory of the analytics snapshot store')
    parser.add_argument('--output-dir', '-o', default='chat_analytics_charts',
                        help='Directory for the PNG files')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    engine = AnalyticsEngine.create(JsonFileStore(args.store_dir))
    written = render_charts(engine.snapshot(), args.output_dir)
    print(f"Charts have been saved in the '{args.output_dir}' directory:")
    for path in written:
        print(f"  {path}")


if __name__ == "__main__":
    main()
