# tests/fakes.py

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta


def local(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    """Aware datetime in the host's local zone."""
    return datetime(year, month, day, hour, minute).astimezone()


class ManualClock:
    """Clock that only moves when a test moves it."""

    def __init__(self, start: datetime) -> None:
        self._now = start

    def now(self) -> datetime:
        return self._now

    def set(self, when: datetime) -> None:
        self._now = when

    def advance(self, seconds: float = 0.0, **kwargs: float) -> datetime:
        # Re-localize so a move across midnight keeps a correct local offset.
        self._now = (self._now + timedelta(seconds=seconds, **kwargs)).astimezone()
        return self._now


@dataclass(slots=True)
class Notification:
    title: str
    body: str


@dataclass(slots=True)
class RecordingSink:
    """NotificationSink that keeps everything it was asked to deliver."""

    sent: list[Notification] = field(default_factory=list)

    def notify(self, title: str, body: str) -> None:
        self.sent.append(Notification(title=title, body=body))

    def titles(self) -> list[str]:
        return [n.title for n in self.sent]


class FailingSink:
    def __init__(self) -> None:
        self.calls = 0

    def notify(self, title: str, body: str) -> None:
        self.calls += 1
        raise RuntimeError("notification backend is down")


class FakeSleep:
    """
    asyncio.sleep replacement that advances a ManualClock instead of waiting.

    After `limit` calls it raises CancelledError, which ends the loop under test the same way
    cancelling its task would.
    """

    def __init__(self, clock: ManualClock, *, limit: int = 10) -> None:
        self.clock = clock
        self.limit = limit
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        if len(self.delays) >= self.limit:
            raise asyncio.CancelledError()
        self.delays.append(seconds)
        self.clock.advance(seconds)
        await asyncio.sleep(0)


class FakePolisher:
    def __init__(self, text: str = "**Key Themes:**\n- planning") -> None:
        self.text = text
        self.calls: list[dict[str, str]] = []

    def summarize(self, *, period: str, start_iso: str, end_iso: str, plain_markdown: str) -> str:
        self.calls.append(
            {"period": period, "start_iso": start_iso, "end_iso": end_iso, "plain_markdown": plain_markdown}
        )
        return self.text
