"""Tests for chat_export.py transcript formatting and CLI."""

from __future__ import annotations

from datetime import datetime

import pytest

from analytics import AnalyticsEngine
from chat_export import (
    clean_text,
    default_output_name,
    export_transcript,
    format_timestamp,
    format_transcript,
    main,
)
from helpers import FakeClock, play_turns
from store import JsonFileStore

EXPORTED_AT = datetime(2024, 2, 1, 12, 30, 0)


class TestCleanText:
    def test_collapses_blank_lines(self):
        assert clean_text("a\n\n\n\nb") == "a\n\nb"

    def test_strips(self):
        assert clean_text("  hello  \n") == "hello"


class TestFormatTimestamp:
    def test_formats(self):
        assert format_timestamp(datetime(2024, 1, 15, 9, 5, 7, 999)) == "2024-01-15 09:05:07"

    def test_none(self):
        assert format_timestamp(None) == "Unknown time"


class TestFormatTranscript:
    def _history(self):
        return [
            {"text": "hello", "sender": "user", "timestamp": datetime(2024, 1, 15, 10, 0)},
            {
                "text": "Hi! How can I help?",
                "sender": "bot",
                "timestamp": datetime(2024, 1, 15, 10, 0, 2),
                "response_time": 2.0,
            },
        ]

    def test_header(self):
        text = format_transcript([], username="alice", exported_at=EXPORTED_AT)
        lines = text.splitlines()
        assert lines[:4] == ["Chat Export", "User: alice", "Date: 2024-02-01", "Time: 12:30:00"]

    def test_sender_labels_and_response_time(self):
        text = format_transcript(self._history(), exported_at=EXPORTED_AT)
        assert "You (2024-01-15 10:00:00)" in text
        assert "AI Assistant (2024-01-15 10:00:02) [2.00s]" in text

    def test_unmeasured_response_time_omitted(self):
        history = self._history()
        history[1]["response_time"] = 0.0
        text = format_transcript(history, exported_at=EXPORTED_AT)
        assert "AI Assistant (2024-01-15 10:00:02)\n" in text

    def test_wraps_long_messages(self):
        history = [{
            "text": " ".join(["word"] * 60),
            "sender": "user",
            "timestamp": datetime(2024, 1, 15, 10, 0),
        }]
        text = format_transcript(history, width=40, exported_at=EXPORTED_AT)
        body = [line for line in text.splitlines() if line.startswith("word")]
        assert len(body) > 1
        assert all(len(line) <= 40 for line in body)

    def test_keeps_paragraphs(self):
        history = [{
            "text": "first\n\n\n\nsecond",
            "sender": "bot",
            "timestamp": datetime(2024, 1, 15, 10, 0),
        }]
        text = format_transcript(history, exported_at=EXPORTED_AT)
        assert "first\n\nsecond" in text

    def test_empty_history(self):
        text = format_transcript([], exported_at=EXPORTED_AT)
        assert "[No messages recorded]" in text
        assert text.endswith("\n")


class TestExportTranscript:
    def test_writes_file(self, tmp_path):
        out = tmp_path / "export.txt"
        export_transcript([], str(out), username="bob")
        assert "User: bob" in out.read_text(encoding="utf-8")


class TestDefaultOutputName:
    def test_sanitises_username(self):
        name = default_output_name("Jane Doe/..", today=EXPORTED_AT)
        assert name == "chat_export_Jane_Doe_2024-02-01.txt"


class TestMain:
    def test_exports_stored_history(self, tmp_path, capsys):
        clock = FakeClock()
        engine = AnalyticsEngine.create(JsonFileStore(tmp_path / "store"), clock=clock)
        play_turns(engine, clock, [("hello", "hi", 1.0)])

        out = tmp_path / "t.txt"
        main(["--store-dir", str(tmp_path / "store"), "-o", str(out), "-u", "carol"])
        text = out.read_text(encoding="utf-8")
        assert "User: carol" in text
        assert "You (2024-01-15 10:00:00)" in text
        assert "Exported 2 messages" in capsys.readouterr().out

    def test_unwritable_output_exits_1(self, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            main([
                "--store-dir", str(tmp_path / "store"),
                "-o", str(tmp_path / "missing" / "dir" / "t.txt"),
            ])
        assert exc_info.value.code == 1

    def test_narrow_width_rejected(self, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            main(["--store-dir", str(tmp_path), "-w", "5"])
        assert exc_info.value.code == 2
