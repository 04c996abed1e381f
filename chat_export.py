"""
Export the recorded chat history into a human-readable text transcript.
The transcript has a short header (user, export date and time) followed by
every message with its sender and timestamp, word-wrapped to a fixed width.
"""

from __future__ import annotations

import argparse
import logging
import re
import sys
import textwrap
from datetime import datetime

from analytics import AnalyticsEngine
from store import DEFAULT_STORE_DIR, JsonFileStore

logger = logging.getLogger(__name__)

SENDER_LABELS = {"user": "You", "bot": "AI Assistant"}
DEFAULT_WIDTH = 80


def clean_text(text: str) -> str:
    """Collapse runs of blank lines and strip surrounding whitespace.

    Args:
        text: Raw message text.

    Returns:
        Text with three or more consecutive newlines reduced to two and
        leading/trailing whitespace removed.
    """
    text = re.sub(r'\n{3,}', '\n\n', text)
    return text.strip()


def format_timestamp(timestamp: datetime | None) -> str:
    """Format a message timestamp as 'YYYY-MM-DD HH:MM:SS'.

    Returns 'Unknown time' when *timestamp* is None.
    """
    if timestamp is None:
        return "Unknown time"
    return timestamp.strftime('%Y-%m-%d %H:%M:%S')


def _wrap_body(text: str, width: int) -> list[str]:
    """Word-wrap each paragraph of *text*, keeping paragraph breaks."""
    lines: list[str] = []
    for paragraph in clean_text(text).split('\n'):
        if not paragraph.strip():
            lines.append('')
            continue
        lines.extend(textwrap.wrap(paragraph, width=width, break_long_words=True))
    return lines or ['']


def format_transcript(
    history: list[dict],
    username: str = "User",
    width: int = DEFAULT_WIDTH,
    exported_at: datetime | None = None,
) -> str:
    """Render a message history as a plain-text transcript.

    Args:
        history: Messages as returned by ``AnalyticsEngine.history``
            (dicts with text, sender, timestamp and optional response_time).
        username: Name shown in the header.
        width: Maximum line width for message bodies.
        exported_at: Export instant for the header; defaults to now.

    Returns:
        The transcript text, ending with a newline.
    """
    exported_at = exported_at or datetime.now()
    out = [
        "Chat Export",
        f"User: {username}",
        f"Date: {exported_at.strftime('%Y-%m-%d')}",
        f"Time: {exported_at.strftime('%H:%M:%S')}",
        "=" * width,
        "",
    ]

    if not history:
        out.append("[No messages recorded]")

    for message in history:
        sender = SENDER_LABELS.get(message.get('sender'), 'Unknown')
        header = f"{sender} ({format_timestamp(message.get('timestamp'))})"
        if message.get('response_time'):
            header += f" [{message['response_time']:.2f}s]"
        out.append(header)
        out.extend(_wrap_body(message.get('text', ''), width))
        out.append("")

    return "\n".join(out).rstrip("\n") + "\n"


def export_transcript(
    history: list[dict],
    output_path: str,
    username: str = "User",
    width: int = DEFAULT_WIDTH,
) -> None:
    """Write the transcript for *history* to *output_path*.

    Raises:
        OSError: If the file cannot be written.
    """
    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(format_transcript(history, username=username, width=width))
    logger.info("Exported %d messages to %s", len(history), output_path)


def default_output_name(username: str, today: datetime | None = None) -> str:
    """Return 'chat_export_<username>_<YYYY-MM-DD>.txt'."""
    today = today or datetime.now()
    safe_user = re.sub(r'[^A-Za-z0-9_-]+', '_', username).strip('_') or 'user'
    return f"chat_export_{safe_user}_{today.strftime('%Y-%m-%d')}.txt"


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for exporting the recorded chat history."""
    parser = argparse.ArgumentParser(description='Export the recorded chat history as text')
    parser.add_argument('--store-dir', default=str(DEFAULT_STORE_DIR),
                        help='Directory of the analytics snapshot store')
    parser.add_argument('--username', '-u', default='User',
                        help='Name shown in the transcript header')
    parser.add_argument('--width', '-w', type=int, default=DEFAULT_WIDTH,
                        help=f'Wrap width for message bodies (default: {DEFAULT_WIDTH})')
    parser.add_argument('--output', '-o',
                        help='Output file (default: chat_export_<user>_<date>.txt)')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    if args.width < 20:
        parser.error("--width must be at least 20")

    engine = AnalyticsEngine.create(JsonFileStore(args.store_dir))
    history = engine.history()
    output = args.output or default_output_name(args.username)

    try:
        export_transcript(history, output, username=args.username, width=args.width)
    except OSError as e:
        print(f"Error: failed to write {output}: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Exported {len(history)} messages to {output}")


if __name__ == '__main__':
    main()
