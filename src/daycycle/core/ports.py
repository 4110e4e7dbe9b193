# src/daycycle/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the engines.

The engines depend on Protocols instead of concrete implementations.
This keeps alert delivery, timers and the optional LLM swappable and makes testing easier.
"""

from collections.abc import Awaitable, Callable
from typing import Protocol

ChatMessage = dict[str, str]
# OpenAI-style chat messages: {"role": "...", "content": "..."}.

AsyncSleep = Callable[[float], Awaitable[None]]
# asyncio.sleep-compatible; tests inject one that advances a manual clock.

BlockingSleep = Callable[[float], None]
# time.sleep-compatible; used for the store-busy retry delay of manual (console) rollovers.


class NotificationSink(Protocol):
    """
    Fire-and-forget alert delivery (desktop notification, log line, ...).

    Implementations may raise; callers go through notify.sinks.deliver(), which never does.
    """

    def notify(self, title: str, body: str) -> None: ...


class DigestPolisher(Protocol):
    """
    Optional LLM step that turns a plain digest into a short written summary.

    Returns an empty string when no summary could be produced.
    """

    def summarize(self, *, period: str, start_iso: str, end_iso: str, plain_markdown: str) -> str: ...
