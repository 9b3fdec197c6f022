"""Environment-driven settings for the audit backend."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv

from core.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-3-pro-preview"
DEFAULT_TIMEOUT_SECONDS = 120.0
DEFAULT_CORS_ORIGINS = ("http://localhost:5173", "http://127.0.0.1:5173")


class SourceFallback(str, Enum):
    """What to report as sources when the model returns no citations."""

    NONE = "none"
    PROFILE = "profile"


@dataclass(frozen=True, slots=True)
class Settings:
    gemini_api_key: Optional[str] = None
    model: str = DEFAULT_MODEL
    request_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    source_fallback: SourceFallback = SourceFallback.NONE
    cors_origins: Tuple[str, ...] = DEFAULT_CORS_ORIGINS

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ``environ`` (defaults to ``os.environ`` after ``.env``)."""

        if environ is None:
            load_dotenv()
            environ = os.environ

        api_key = environ.get("GEMINI_API_KEY") or environ.get("API_KEY") or None

        timeout_raw = environ.get("AUDIT_REQUEST_TIMEOUT")
        try:
            timeout = float(timeout_raw) if timeout_raw else DEFAULT_TIMEOUT_SECONDS
        except ValueError as exc:
            raise ConfigurationError(
                f"AUDIT_REQUEST_TIMEOUT must be a number of seconds, got {timeout_raw!r}."
            ) from exc
        if timeout <= 0:
            raise ConfigurationError("AUDIT_REQUEST_TIMEOUT must be positive.")

        fallback_raw = (environ.get("AUDIT_SOURCE_FALLBACK") or SourceFallback.NONE.value).strip().lower()
        try:
            fallback = SourceFallback(fallback_raw)
        except ValueError as exc:
            allowed = ", ".join(item.value for item in SourceFallback)
            raise ConfigurationError(
                f"AUDIT_SOURCE_FALLBACK must be one of: {allowed}; got {fallback_raw!r}."
            ) from exc

        origins_raw = environ.get("CORS_ORIGINS")
        origins = (
            tuple(origin.strip() for origin in origins_raw.split(",") if origin.strip())
            if origins_raw
            else DEFAULT_CORS_ORIGINS
        )

        settings = cls(
            gemini_api_key=api_key,
            model=environ.get("MODEL") or DEFAULT_MODEL,
            request_timeout_seconds=timeout,
            source_fallback=fallback,
            cors_origins=origins,
        )
        logger.debug(
            "Settings loaded",
            extra={
                "operation": "settings_load",
                "model": settings.model,
                "timeout_s": settings.request_timeout_seconds,
                "source_fallback": settings.source_fallback.value,
                "gemini_key_present": bool(api_key),
            },
        )
        return settings

    def require_api_key(self) -> str:
        if not self.gemini_api_key:
            raise ConfigurationError("GEMINI_API_KEY not configured.")
        return self.gemini_api_key


__all__ = ["Settings", "SourceFallback", "DEFAULT_MODEL", "DEFAULT_TIMEOUT_SECONDS"]
