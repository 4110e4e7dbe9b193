# src/daycycle/config.py

"""Centralized process settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time.
- User preferences (reminder windows, summary schedule, ...) are NOT here; they live in the
  store's settings table, see store/preferences.py.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "DAYCYCLE"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


# Local .env (if present) fills in variables not already set in the environment.
load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float, *, minimum: float = 0.0) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return max(minimum, float(raw))
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Connectors / delivery ----
    console_enabled: bool
    desktop_notifications: bool

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path
    summaries_dir: Path

    # ---- Engine timing ----
    reminder_interval_seconds: float
    rollover_recheck_seconds: float
    report_resync_seconds: float
    report_horizon_seconds: float
    busy_retry_delay_seconds: float
    busy_timeout_seconds: float

    # ---- LLM / OpenRouter (optional AI digest summaries) ----
    openrouter_api_key: str | None
    openrouter_base_url: str
    llm_models: list[str]
    extra_headers: dict[str, str]

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "daycycle").strip() or "daycycle"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)
        desktop_notifications = _env_bool(_k("DESKTOP_NOTIFICATIONS"), True)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/daycycle"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "planner.sqlite3")
        summaries_dir = _env_path(_k("SUMMARIES_DIR"), data_dir / "summaries")

        reminder_interval_seconds = _env_float(_k("REMINDER_INTERVAL_SECONDS"), 60.0, minimum=1.0)
        rollover_recheck_seconds = _env_float(_k("ROLLOVER_RECHECK_SECONDS"), 300.0, minimum=1.0)
        report_resync_seconds = _env_float(_k("REPORT_RESYNC_SECONDS"), 900.0, minimum=1.0)
        report_horizon_seconds = _env_float(_k("REPORT_HORIZON_SECONDS"), 86400.0, minimum=60.0)
        busy_retry_delay_seconds = _env_float(_k("BUSY_RETRY_DELAY_SECONDS"), 0.25)
        busy_timeout_seconds = _env_float(_k("BUSY_TIMEOUT_SECONDS"), 5.0)

        api_key = _env(_k("OPENROUTER_API_KEY"), "").strip() or None
        openrouter_base_url = _env(_k("OPENROUTER_BASE_URL"), "https://openrouter.ai/api/v1")
        llm_models = _env_list(
            _k("LLM_MODELS"),
            [
                "openai/gpt-4o-mini",
                "qwen/qwen-2.5-72b-instruct:free",
                "deepseek/deepseek-chat-v3-0324:free",
            ],
        )
        extra_headers = {
            "HTTP-Referer": _env(_k("HTTP_REFERER"), "https://example.com"),
            "X-Title": app_name,
        }

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            desktop_notifications=desktop_notifications,
            data_dir=data_dir,
            db_path=db_path,
            summaries_dir=summaries_dir,
            reminder_interval_seconds=reminder_interval_seconds,
            rollover_recheck_seconds=rollover_recheck_seconds,
            report_resync_seconds=report_resync_seconds,
            report_horizon_seconds=report_horizon_seconds,
            busy_retry_delay_seconds=busy_retry_delay_seconds,
            busy_timeout_seconds=busy_timeout_seconds,
            openrouter_api_key=api_key,
            openrouter_base_url=openrouter_base_url,
            llm_models=llm_models,
            extra_headers=extra_headers,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
