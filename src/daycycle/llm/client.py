# src/daycycle/llm/client.py

from __future__ import annotations

import logging
import time
from typing import Any

import openai
from openai import OpenAI

from ..core.ports import ChatMessage

logger = logging.getLogger(__name__)

_BAD_MODELS: dict[str, float] = {}  # model -> retry_at (monotonic)

SYSTEM_PROMPT = (
    "You are an assistant that creates concise, insightful summaries of completed tasks. "
    "Focus on themes, patterns, and notable accomplishments without including task IDs "
    "or speculative content."
)


def build_prompt(*, period: str, start_iso: str, end_iso: str, plain_markdown: str) -> str:
    """User prompt for one digest. Monthly digests get a detailed style with recommendations."""
    style = "detailed" if period == "monthly" else "concise"
    recommendations = (
        "\n**Recommendations:**\n- [1-2 suggestions for the upcoming period based on patterns observed]\n"
        if style == "detailed"
        else ""
    )
    return (
        f"Please provide a {style} AI summary for the following {period} task completion report.\n\n"
        f"Period: {start_iso} to {end_iso}\n\n"
        f"{plain_markdown}\n\n"
        "Create a structured summary using EXACTLY this format:\n\n"
        "**Key Themes:**\n- [List 2-3 main themes or categories of work completed]\n\n"
        "**Notable Achievements:**\n- [List 1-2 significant accomplishments or milestones]\n\n"
        "**Productivity Insights:**\n- [1-2 observations about work patterns, peak days, or productivity trends]\n\n"
        "**Areas of Focus:**\n- [Identify the primary area(s) where most effort was spent]\n"
        f"{recommendations}\n"
        "Keep each point concise and actionable. Focus on insights rather than just counting tasks."
    )


def _is_auth_error(exc: Exception) -> bool:
    return exc.__class__.__name__ in {
        "AuthenticationError",
        "PermissionDeniedError",
        "UnauthorizedError",
    }


def _is_rate_limit_error(exc: Exception) -> bool:
    if isinstance(exc, openai.RateLimitError):
        return True
    return exc.__class__.__name__ in {"RateLimitError", "TooManyRequestsError"}


def _is_connection_error(exc: Exception) -> bool:
    return exc.__class__.__name__ in {
        "APIConnectionError",
        "APITimeoutError",
        "Timeout",
        "ConnectTimeout",
        "ReadTimeout",
        "WriteTimeout",
    }


def _is_not_found_error(exc: Exception) -> bool:
    # OpenAI-compatible SDK uses NotFoundError for HTTP 404
    return exc.__class__.__name__ in {"NotFoundError"}


def _message_text(response: Any) -> str:
    try:
        content = response.choices[0].message.content
    except (AttributeError, IndexError, TypeError):
        return ""
    return (content or "").strip()


class OpenRouterPolisher:
    """
    DigestPolisher backed by an OpenAI-compatible endpoint (OpenRouter by default).

    Models are tried in order:
    - 404 (model not available) -> remembered for an hour, try next
    - rate limit / network issues -> try next
    - auth issues -> stop (no point trying other models)
    Every failure ends in an empty summary; the digest is written without it.
    """

    def __init__(self, settings, *, client: OpenAI | None = None, max_tokens: int = 800) -> None:
        api_key = getattr(settings, "openrouter_api_key", None)
        base_url = str(getattr(settings, "openrouter_base_url", "") or "").strip()
        if client is None:
            if not api_key or not str(api_key).strip():
                raise RuntimeError("LLM API key is not set. Set DAYCYCLE_OPENROUTER_API_KEY in your .env.")
            if not base_url:
                raise RuntimeError("LLM base URL is not set. Set DAYCYCLE_OPENROUTER_BASE_URL in your .env.")
            # No SDK retries: fall back across models quickly instead.
            client = OpenAI(base_url=base_url, api_key=str(api_key), timeout=30.0, max_retries=0)

        self._client = client
        self._models: list[str] = [m.strip() for m in (getattr(settings, "llm_models", []) or []) if m.strip()]
        self._headers: dict[str, str] = dict(getattr(settings, "extra_headers", {}) or {})
        self._max_tokens = int(max_tokens)

    def summarize(self, *, period: str, start_iso: str, end_iso: str, plain_markdown: str) -> str:
        if not self._models:
            logger.warning("AI summary skipped: no models configured (DAYCYCLE_LLM_MODELS)")
            return ""

        prompt = build_prompt(period=period, start_iso=start_iso, end_iso=end_iso, plain_markdown=plain_markdown)
        messages: list[ChatMessage] = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]
        now = time.monotonic()

        for model in self._models:
            retry_at = _BAD_MODELS.get(model)
            if retry_at is not None and retry_at > now:
                continue

            logger.info("LLM: trying model=%s for %s summary", model, period)
            t0 = time.monotonic()
            try:
                response = self._client.chat.completions.create(
                    model=model,
                    messages=messages,
                    max_tokens=self._max_tokens,
                    temperature=0.7,
                    extra_headers=self._headers or None,
                )
            except Exception as e:
                if _is_auth_error(e):
                    logger.error("LLM authentication failed. Check DAYCYCLE_OPENROUTER_API_KEY.")
                    return ""
                if _is_not_found_error(e):
                    _BAD_MODELS[model] = time.monotonic() + 3600.0  # 1 hour
                    logger.info("LLM: model not available (404): %s", model)
                    continue
                if _is_rate_limit_error(e):
                    logger.info("LLM: rate-limited on model=%s, trying next", model)
                    continue
                if _is_connection_error(e):
                    logger.info("LLM: network/timeout error on model=%s, trying next", model)
                    continue
                logger.info("LLM: error on model=%s (%s), trying next", model, e.__class__.__name__)
                continue

            text = _message_text(response)
            if text:
                logger.info("LLM: summary from model=%s (%.2fs)", model, time.monotonic() - t0)
                return text
            logger.info("LLM: model=%s returned no content, trying next", model)

        logger.warning("AI summary unavailable: all models failed")
        return ""
