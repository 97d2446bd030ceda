from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_MAX_TOKENS = 300
DEFAULT_TIMEOUT_SECONDS = 60.0
DEFAULT_MAX_IMAGE_BYTES = 5 * 1024 * 1024
DEFAULT_CREDENTIAL_PREFIX = "sk-"
DEFAULT_CREDENTIAL_MIN_LENGTH = 10
DEFAULT_CORS_ORIGINS = ("*",)


@dataclass(frozen=True)
class SkinAnalysisSettings:
    api_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    max_tokens: int = DEFAULT_MAX_TOKENS
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    max_image_bytes: int = DEFAULT_MAX_IMAGE_BYTES
    credential_prefix: str = DEFAULT_CREDENTIAL_PREFIX
    credential_min_length: int = DEFAULT_CREDENTIAL_MIN_LENGTH
    log_level: str = "INFO"
    cors_origins: tuple[str, ...] = DEFAULT_CORS_ORIGINS

    @classmethod
    def from_env(cls) -> "SkinAnalysisSettings":
        return cls(
            api_key=os.getenv("SKIN_OPENAI_API_KEY", "").strip(),
            base_url=(os.getenv("SKIN_OPENAI_BASE_URL") or DEFAULT_BASE_URL).strip().rstrip("/"),
            model=(os.getenv("SKIN_OPENAI_MODEL") or DEFAULT_MODEL).strip(),
            max_tokens=_parse_positive_int(
                os.getenv("SKIN_OPENAI_MAX_TOKENS"),
                fallback=DEFAULT_MAX_TOKENS,
            ),
            timeout_seconds=_parse_timeout_seconds(
                os.getenv("SKIN_REQUEST_TIMEOUT_SECONDS"),
                fallback=DEFAULT_TIMEOUT_SECONDS,
            ),
            max_image_bytes=_parse_positive_int(
                os.getenv("SKIN_MAX_IMAGE_BYTES"),
                fallback=DEFAULT_MAX_IMAGE_BYTES,
            ),
            credential_prefix=os.getenv("SKIN_CREDENTIAL_PREFIX", DEFAULT_CREDENTIAL_PREFIX),
            credential_min_length=_parse_positive_int(
                os.getenv("SKIN_CREDENTIAL_MIN_LENGTH"),
                fallback=DEFAULT_CREDENTIAL_MIN_LENGTH,
            ),
            log_level=(os.getenv("SKIN_LOG_LEVEL") or "INFO").strip().upper(),
            cors_origins=_parse_origins(os.getenv("SKIN_CORS_ORIGINS")),
        )


def _parse_timeout_seconds(raw_value: str | None, *, fallback: float) -> float:
    if raw_value is None:
        return fallback
    try:
        parsed = float(raw_value)
    except Exception:
        return fallback
    if parsed <= 0:
        return fallback
    return parsed


def _parse_positive_int(raw_value: str | None, *, fallback: int) -> int:
    if raw_value is None:
        return fallback
    try:
        parsed = int(raw_value)
    except Exception:
        return fallback
    if parsed <= 0:
        return fallback
    return parsed


def _parse_origins(raw_value: str | None) -> tuple[str, ...]:
    if raw_value is None:
        return DEFAULT_CORS_ORIGINS
    origins = tuple(item.strip().rstrip("/") for item in raw_value.split(",") if item.strip())
    return origins or DEFAULT_CORS_ORIGINS
