"""Online aggregation of chat activity statistics.

The ``AnalyticsEngine`` ingests user and bot messages one at a time and keeps
running totals, response-time averages, topic counts and hour/weekday
activity buckets up to date.  Every mutation is written through to a
``SnapshotStore`` before the call returns.  Used by the web service
(app.py) and the reporting CLIs (chat_summary.py, chat_viz.py,
chat_export.py).
"""

from __future__ import annotations

import copy
import json
import logging
import threading
from datetime import datetime
from typing import Any, Callable

from activity import WEEKDAYS, empty_hourly_activity, empty_weekly_activity, record_activity
from store import SnapshotStore
from topics import classify, first_seen_order, register_topic, sort_topics

logger = logging.getLogger(__name__)

SNAPSHOT_KEY = "chatAnalytics"
SENDERS = ("user", "bot")


# ---------------------------------------------------------------------------
# Aggregate state
# ---------------------------------------------------------------------------

def default_analytics() -> dict[str, Any]:
    """Return a zeroed aggregate state.

    Returns:
        Dict with zero counters, 24 hour buckets (0..23), 7 day buckets
        (Mon..Sun), and empty topic and message lists.
    """
    return {
        "total_messages": 0,
        "user_messages": 0,
        "bot_messages": 0,
        "average_response_time": 0.0,
        "active_days": 0,
        "messages_per_day": 0.0,
        "popular_topics": [],
        "hourly_activity": empty_hourly_activity(),
        "weekly_activity": empty_weekly_activity(),
        "message_history": [],
    }


def _messages_per_day(total_messages: int, active_days: int) -> float:
    return total_messages / max(active_days, 1)


def _average_response_time(history: list[dict]) -> float:
    """Mean of the measured (non-zero) response times in *history*."""
    times = [m["response_time"] for m in history if m.get("response_time")]
    return sum(times) / len(times) if times else 0.0


def _is_new_active_day(history: list[dict]) -> bool:
    """Whether the last message in *history* opens a new active day.

    Looks back one position only: the newest message counts as a new day
    when there is no previous message or the previous one has a different
    calendar date.  Exact for strictly chronological single-stream input.
    """
    if len(history) < 2:
        return True
    return history[-2]["timestamp"].date() != history[-1]["timestamp"].date()


# ---------------------------------------------------------------------------
# Persistence codec
# ---------------------------------------------------------------------------

def _parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 string into a local naive datetime.

    Accepts a trailing ``Z`` and explicit UTC offsets, which are converted
    to local time.

    Raises:
        ValueError: If *value* is not a parseable ISO-8601 string.
    """
    if not isinstance(value, str):
        raise ValueError(f"timestamp must be a string, got {type(value).__name__}")
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    ts = datetime.fromisoformat(text)
    if ts.tzinfo is not None:
        ts = ts.astimezone().replace(tzinfo=None)
    return ts


def _require_count(payload: dict, field: str) -> int:
    value = payload[field]
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"{field} must be a non-negative integer")
    return value


def _require_number(payload: dict, field: str) -> float:
    value = payload[field]
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ValueError(f"{field} must be a non-negative number")
    return float(value)


def message_to_payload(message: dict) -> dict[str, Any]:
    out: dict[str, Any] = {
        "text": message["text"],
        "sender": message["sender"],
        "timestamp": message["timestamp"].isoformat(),
    }
    if message.get("response_time") is not None:
        out["responseTime"] = message["response_time"]
    return out


def _message_from_payload(item: Any) -> dict[str, Any]:
    if not isinstance(item, dict):
        raise ValueError("message entries must be objects")
    text = item["text"]
    if not isinstance(text, str):
        raise ValueError("message text must be a string")
    sender = item["sender"]
    if sender not in SENDERS:
        raise ValueError(f"unknown sender: {sender!r}")
    message: dict[str, Any] = {
        "text": text,
        "sender": sender,
        "timestamp": _parse_timestamp(item["timestamp"]),
    }
    if item.get("responseTime") is not None:
        message["response_time"] = _require_number(item, "responseTime")
    return message


def _buckets_from_payload(items: Any, label: str, expected: list) -> list[dict]:
    if not isinstance(items, list) or len(items) != len(expected):
        raise ValueError(f"{label} buckets must be a list of {len(expected)}")
    buckets = []
    for item, want in zip(items, expected):
        if not isinstance(item, dict) or item[label] != want:
            raise ValueError(f"{label} buckets out of order at {want!r}")
        buckets.append({label: want, "count": _require_count(item, "count")})
    return buckets


def to_payload(state: dict[str, Any]) -> dict[str, Any]:
    """Convert aggregate state into the persisted JSON shape.

    Args:
        state: Aggregate state as returned by ``default_analytics`` or
            ``AnalyticsEngine.snapshot``.

    Returns:
        JSON-serialisable dict with camelCase keys: totalMessages,
        userMessages, botMessages, averageResponseTime, activeDays,
        messagesPerDay, popularTopics, hourlyActivity, weeklyActivity,
        messageHistory (timestamps as ISO-8601 strings).
    """
    return {
        "totalMessages": state["total_messages"],
        "userMessages": state["user_messages"],
        "botMessages": state["bot_messages"],
        "averageResponseTime": state["average_response_time"],
        "activeDays": state["active_days"],
        "messagesPerDay": state["messages_per_day"],
        "popularTopics": [dict(t) for t in state["popular_topics"]],
        "hourlyActivity": [dict(b) for b in state["hourly_activity"]],
        "weeklyActivity": [dict(b) for b in state["weekly_activity"]],
        "messageHistory": [message_to_payload(m) for m in state["message_history"]],
    }


def from_payload(payload: Any) -> dict[str, Any]:
    """Rebuild aggregate state from the persisted JSON shape.

    ``messagesPerDay`` is recomputed from totalMessages and activeDays
    rather than read back.

    Raises:
        ValueError: If any field is missing, mistyped or inconsistent.
    """
    if not isinstance(payload, dict):
        raise ValueError("snapshot must be a JSON object")
    try:
        total = _require_count(payload, "totalMessages")
        user = _require_count(payload, "userMessages")
        bot = _require_count(payload, "botMessages")
        if total != user + bot:
            raise ValueError("totalMessages != userMessages + botMessages")

        topics_raw = payload["popularTopics"]
        if not isinstance(topics_raw, list):
            raise ValueError("popularTopics must be a list")
        topics = []
        for item in topics_raw:
            if not isinstance(item, dict) or not isinstance(item["topic"], str):
                raise ValueError("popularTopics entries must have a topic label")
            topics.append({"topic": item["topic"], "count": _require_count(item, "count")})

        history_raw = payload["messageHistory"]
        if not isinstance(history_raw, list):
            raise ValueError("messageHistory must be a list")
        history = [_message_from_payload(item) for item in history_raw]
        if len(history) != total:
            raise ValueError("messageHistory length != totalMessages")
        if sum(1 for m in history if m["sender"] == "user") != user:
            raise ValueError("user messages in history != userMessages")
        active_days = _require_count(payload, "activeDays")

        hourly = _buckets_from_payload(payload["hourlyActivity"], "hour", list(range(24)))
        weekly = _buckets_from_payload(payload["weeklyActivity"], "day", list(WEEKDAYS))
        if sum(b["count"] for b in hourly) != total:
            raise ValueError("hourlyActivity counts do not sum to totalMessages")
        if sum(b["count"] for b in weekly) != total:
            raise ValueError("weeklyActivity counts do not sum to totalMessages")

        return {
            "total_messages": total,
            "user_messages": user,
            "bot_messages": bot,
            "average_response_time": _require_number(payload, "averageResponseTime"),
            "active_days": active_days,
            "messages_per_day": _messages_per_day(total, active_days),
            "popular_topics": topics,
            "hourly_activity": hourly,
            "weekly_activity": weekly,
            "message_history": history,
        }
    except (KeyError, TypeError) as exc:
        raise ValueError(f"malformed snapshot: {exc!r}") from exc


def serialize_analytics(state: dict[str, Any]) -> bytes:
    """Encode aggregate state as JSON bytes.

    Non-ASCII characters, lone surrogates included, are written as \\u
    escapes so any Python string survives the round trip.
    """
    return json.dumps(to_payload(state)).encode("ascii")


def deserialize_analytics(data: bytes | str) -> dict[str, Any]:
    """Decode UTF-8 JSON bytes (or an already decoded string) into aggregate state.

    Raises:
        ValueError: On undecodable bytes, invalid JSON or a malformed
            snapshot (``json.JSONDecodeError`` and ``UnicodeDecodeError``
            are both ``ValueError`` subclasses).
    """
    text = data if isinstance(data, str) else data.decode("utf-8")
    return from_payload(json.loads(text))


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class AnalyticsEngine:
    """Owns one aggregate state and keeps its store in sync.

    Public operations never raise on persistence problems: a failed load
    falls back to the zeroed default and a failed save is logged while the
    in-memory state stays authoritative for the session.
    """

    def __init__(
        self,
        store: SnapshotStore | None,
        clock: Callable[[], datetime] = datetime.now,
        key: str = SNAPSHOT_KEY,
    ) -> None:
        self._store = store
        self._clock = clock
        self._key = key
        self._lock = threading.Lock()
        self._turn_started_at: datetime | None = None
        self._state: dict[str, Any] = default_analytics()
        self._topic_order: list[str] = []
        self.load_or_default()

    @classmethod
    def create(
        cls,
        store: SnapshotStore | None,
        clock: Callable[[], datetime] = datetime.now,
        key: str = SNAPSHOT_KEY,
    ) -> AnalyticsEngine:
        """Build an engine restored from *store* (or zeroed if unavailable)."""
        return cls(store, clock=clock, key=key)

    # -- lifecycle ---------------------------------------------------------

    def _read_store(self) -> dict[str, Any] | None:
        if self._store is None:
            return None
        try:
            raw = self._store.load(self._key)
        except Exception:
            logger.warning("Failed to read analytics snapshot %r", self._key, exc_info=True)
            return None
        if raw is None:
            return None
        try:
            return deserialize_analytics(raw)
        except Exception as exc:
            logger.warning("Discarding corrupt analytics snapshot %r: %r", self._key, exc)
            return None

    def load_or_default(self) -> str:
        """Replace in-memory state with the stored snapshot or the default.

        Returns:
            "store" if a valid snapshot was loaded, otherwise "default".
        """
        loaded = self._read_store()
        with self._lock:
            self._turn_started_at = None
            if loaded is None:
                self._state = default_analytics()
                self._topic_order = []
                return "default"
            self._state = loaded
            self._topic_order = first_seen_order(
                [m["text"] for m in loaded["message_history"] if m["sender"] == "user"]
            )
            sort_topics(self._state["popular_topics"], self._topic_order)
        logger.info(
            "Restored analytics snapshot %r (%d messages)",
            self._key, loaded["total_messages"],
        )
        return "store"

    def dispose(self) -> None:
        """Write a final snapshot and detach the store."""
        with self._lock:
            self._persist()
            self._store = None
            self._turn_started_at = None

    def _persist(self) -> None:
        if self._store is None:
            logger.debug("No store attached; snapshot kept in memory only")
            return
        try:
            self._store.save(self._key, serialize_analytics(self._state))
        except Exception:
            logger.warning("Failed to persist analytics snapshot %r", self._key, exc_info=True)

    # -- mutations ---------------------------------------------------------

    def start_turn(self) -> None:
        """Mark the start of a turn; the next bot reply is timed from here."""
        with self._lock:
            self._turn_started_at = self._clock()

    def _append(self, message: dict[str, Any]) -> None:
        """Account for a new message in counters, buckets and active days."""
        state = self._state
        state["total_messages"] += 1
        state["message_history"].append(message)
        record_activity(state["hourly_activity"], state["weekly_activity"], message["timestamp"])
        if _is_new_active_day(state["message_history"]):
            state["active_days"] += 1
        state["messages_per_day"] = _messages_per_day(
            state["total_messages"], state["active_days"]
        )

    def record_user_message(self, text: str) -> dict[str, Any]:
        """Record a user message, classify it and persist.

        Args:
            text: Message text; any string, including empty, is accepted.

        Returns:
            A copy of the recorded message.
        """
        with self._lock:
            message = {"text": text, "sender": "user", "timestamp": self._clock()}
            self._state["user_messages"] += 1
            topic = classify(text)
            if topic is not None:
                register_topic(self._state["popular_topics"], topic, self._topic_order)
            self._append(message)
            self._persist()
            return dict(message)

    def record_bot_message(self, text: str) -> dict[str, Any]:
        """Record a bot reply with its response time and persist.

        The response time is measured from the last ``start_turn`` call,
        which is consumed; without one it is recorded as 0 and left out of
        the average.

        Returns:
            A copy of the recorded message.
        """
        with self._lock:
            now = self._clock()
            if self._turn_started_at is None:
                response_time = 0.0
            else:
                response_time = max((now - self._turn_started_at).total_seconds(), 0.0)
            self._turn_started_at = None

            message = {
                "text": text,
                "sender": "bot",
                "timestamp": now,
                "response_time": response_time,
            }
            self._state["bot_messages"] += 1
            self._append(message)
            self._state["average_response_time"] = _average_response_time(
                self._state["message_history"]
            )
            self._persist()
            return dict(message)

    def reset(self) -> None:
        """Replace all statistics with the zeroed default and persist."""
        with self._lock:
            self._state = default_analytics()
            self._topic_order = []
            self._turn_started_at = None
            self._persist()
        logger.info("Analytics reset")

    # -- reads -------------------------------------------------------------

    def snapshot(self) -> dict[str, Any]:
        """Return a deep copy of the current aggregate state."""
        with self._lock:
            return copy.deepcopy(self._state)

    def history(self) -> list[dict[str, Any]]:
        """Return a deep copy of the message history, oldest first."""
        with self._lock:
            return copy.deepcopy(self._state["message_history"])
