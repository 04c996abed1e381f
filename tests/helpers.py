"""Shared test helpers for chat analytics tests.

Regular functions and classes (not fixtures) that can be imported by any
test module.
"""

from __future__ import annotations

from datetime import datetime, timedelta


class FakeClock:
    """Callable clock returning a controllable local datetime."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 15, 10, 0, 0)  # a Monday

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        """Move the clock forward by ``timedelta(**kwargs)``."""
        self.now += timedelta(**kwargs)
        return self.now

    def set(self, when: datetime) -> None:
        self.now = when


class FailingStore:
    """Store whose reads and/or writes always raise."""

    def __init__(self, fail_load: bool = True, fail_save: bool = True) -> None:
        self.fail_load = fail_load
        self.fail_save = fail_save
        self.saved: dict[str, bytes] = {}

    def load(self, key: str) -> bytes | None:
        if self.fail_load:
            raise OSError("disk unavailable")
        return self.saved.get(key)

    def save(self, key: str, data: bytes) -> None:
        if self.fail_save:
            raise OSError("disk full")
        self.saved[key] = data


def play_turns(engine, clock: FakeClock, turns: list[tuple[str, str, float]]) -> None:
    """Play (user_text, bot_text, response_seconds) turns through *engine*."""
    for user_text, bot_text, seconds in turns:
        engine.start_turn()
        engine.record_user_message(user_text)
        clock.advance(seconds=seconds)
        engine.record_bot_message(bot_text)
        clock.advance(minutes=1)
