"""Keyword-based topic classification for chat messages.

Each user message is attributed to at most one topic.  The taxonomy is an
ordered list scanned top to bottom; the first topic with any keyword found
as a substring of the lower-cased text wins.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Taxonomy (order is significant: earlier entries win ties)
# ---------------------------------------------------------------------------
TOPIC_TAXONOMY: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("General Questions", ("hello", "hey", "good morning", "thanks", "thank you", "question")),
    ("Technical Support", ("support", "problem", "issue", "error", "crash", "not working")),
    ("Code Help", ("code", "programming", "function", "debug", "class", "variable", "loop")),
    ("Writing Assistance", ("write", "email", "letter", "document", "essay", "report")),
    ("Math Problems", ("math", "calculate", "equation", "solve", "number", "+")),
    ("Creative Writing", ("story", "creative", "imagine", "fiction", "poem")),
    ("Language Learning", ("language", "translate", "grammar", "vocabulary", "speak")),
    ("Travel Planning", ("travel", "trip", "vacation", "hotel", "flight", "destination")),
    ("Health Advice", ("health", "medical", "diet", "exercise", "symptoms")),
)

TOPIC_LABELS: tuple[str, ...] = tuple(label for label, _ in TOPIC_TAXONOMY)


def classify(text: str) -> str | None:
    """Return the topic label for *text*, or None if nothing matches.

    Args:
        text: Raw message text.  Matching is case-insensitive and works on
            substrings, so "hey" also matches inside "they".

    Returns:
        The first topic in ``TOPIC_TAXONOMY`` with a keyword contained in
        the text, or None.
    """
    lowered = text.lower()
    for label, keywords in TOPIC_TAXONOMY:
        if any(keyword in lowered for keyword in keywords):
            return label
    return None


def sort_topics(popular_topics: list[dict], order: list[str]) -> None:
    """Sort topic counts in place: count descending, then first-seen order.

    Topics missing from *order* keep their relative position after the
    ones that are listed.
    """
    rank = {topic: i for i, topic in enumerate(order)}
    fallback = len(rank)
    positions = {t["topic"]: i for i, t in enumerate(popular_topics)}
    popular_topics.sort(
        key=lambda t: (
            -t["count"],
            rank.get(t["topic"], fallback),
            positions[t["topic"]],
        )
    )


def register_topic(popular_topics: list[dict], topic: str, order: list[str]) -> None:
    """Count one occurrence of *topic* and re-sort the topic list.

    Args:
        popular_topics: List of ``{"topic", "count"}`` dicts, mutated.
        topic: Label returned by ``classify``.
        order: Labels in first-classification order, mutated when *topic*
            is seen for the first time.
    """
    for entry in popular_topics:
        if entry["topic"] == topic:
            entry["count"] += 1
            break
    else:
        popular_topics.append({"topic": topic, "count": 1})

    if topic not in order:
        order.append(topic)
    sort_topics(popular_topics, order)


def first_seen_order(texts: list[str]) -> list[str]:
    """Rebuild first-classification order from user message texts."""
    order: list[str] = []
    for text in texts:
        topic = classify(text)
        if topic is not None and topic not in order:
            order.append(topic)
    return order
