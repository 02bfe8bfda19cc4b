"""Configuration helpers for environment variables."""

from __future__ import annotations

import os
import logging

from dotenv import load_dotenv

from shared.models import DEFAULT_PAGE_SIZE, PAGE_SIZE_OPTIONS


logger = logging.getLogger(__name__)


_TRUE_VALUES = {"1", "true"}
_FALSE_VALUES = {"0", "false"}


def _should_load_dotenv() -> bool:
    """Return whether local dotenv loading should run."""
    app_env = os.getenv("APP_ENV", "dev").strip().lower()
    return app_env in {"dev", "local"}


if _should_load_dotenv():
    load_dotenv()


def get_env(name: str, default: str | None = None) -> str | None:
    """Return a raw environment value or default."""
    return os.getenv(name, default)


def app_env() -> str:
    """Return the current application environment."""
    return (get_env("APP_ENV", "dev") or "dev").strip() or "dev"


def default_page_size() -> int:
    """Return the initial page size of the transactions view."""
    raw_value = (get_env("SPENDY_DEFAULT_PAGE_SIZE", "") or "").strip()
    if not raw_value:
        return DEFAULT_PAGE_SIZE

    try:
        page_size = int(raw_value)
    except ValueError:
        page_size = None

    if page_size not in PAGE_SIZE_OPTIONS:
        logger.warning(
            "default_page_size_invalid value=%s allowed=%s; using %s",
            raw_value,
            PAGE_SIZE_OPTIONS,
            DEFAULT_PAGE_SIZE,
        )
        return DEFAULT_PAGE_SIZE
    return page_size


def seed_default_categories() -> bool:
    """Return whether the category registry starts with the built-in categories."""
    raw_value = (get_env("SPENDY_SEED_DEFAULT_CATEGORIES", "") or "").strip().lower()
    return raw_value not in _FALSE_VALUES


def cors_allow_origins() -> list[str]:
    """Return CORS allowed origins from env with safe environment defaults."""
    raw_origins = get_env("CORS_ALLOW_ORIGINS", "") or ""
    parsed_origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]

    if parsed_origins:
        return parsed_origins

    if app_env().strip().lower() in {"dev", "local"}:
        return ["http://localhost:5173", "http://127.0.0.1:5173"]

    ui_origin = (get_env("UI_ORIGIN", "") or "").strip()
    if ui_origin:
        return [ui_origin]

    logger.warning(
        "cors_allow_origins_empty_in_prod app_env=%s; define CORS_ALLOW_ORIGINS or UI_ORIGIN",
        app_env(),
    )

    return []


def debug_endpoints_enabled() -> bool:
    """Return whether debug-only HTTP endpoints are exposed."""
    raw_value = get_env("DEBUG_ENDPOINTS_ENABLED", "") or ""
    return raw_value.strip().lower() in _TRUE_VALUES
