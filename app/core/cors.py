from __future__ import annotations

from app.core.config import settings


def cors_allowed_origins() -> list[str]:
    # "*" cannot be combined with credentials, so it is dropped when credentials are on
    origins = [origin.rstrip("/") for origin in settings.cors_allowed_origins]
    if settings.cors_allow_credentials:
        origins = [origin for origin in origins if origin != "*"]
    return origins


def cors_allow_origin_regex() -> str | None:
    regex = (settings.cors_allow_origin_regex or "").strip()
    return regex or None
