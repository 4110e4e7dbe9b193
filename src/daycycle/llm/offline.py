# src/daycycle/llm/offline.py

from __future__ import annotations


class OfflinePolisher:
    """
    No-op DigestPolisher used when no external API is configured.

    Digests are then written without the "Summary" section.
    """

    def summarize(self, *, period: str, start_iso: str, end_iso: str, plain_markdown: str) -> str:
        return ""
