from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

_TRUTHY = {"1", "true", "yes", "on"}

DEFAULT_MODELS = {
    "anthropic": "claude-sonnet-4-5",
    "gemini": "gemini-1.5-flash",
}


def _flag(name: str, default: str = "") -> bool:
    return os.getenv(name, default).strip().lower() in _TRUTHY


def _int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)).strip())
    except ValueError:
        return default


def _optional_float(name: str) -> Optional[float]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


@dataclass(frozen=True)
class Settings:
    """Runtime configuration, read once from the environment."""

    provider: str = "anthropic"
    model: str = DEFAULT_MODELS["anthropic"]
    anthropic_api_key: str = ""
    anthropic_base_url: str = "https://api.anthropic.com"
    gemini_api_key: str = ""

    extract_max_tokens: int = 900
    enrich_max_tokens: int = 2000
    enable_enrichment: bool = True

    image_max_dim: int = 1280
    image_jpeg_quality: int = 82

    # None means no timeout on the model call.
    model_timeout_seconds: Optional[float] = None
    debug: bool = False

    @property
    def api_key(self) -> str:
        if self.provider == "gemini":
            return self.gemini_api_key
        return self.anthropic_api_key

    @classmethod
    def from_env(cls) -> "Settings":
        provider = os.getenv("MODEL_PROVIDER", "anthropic").strip().lower() or "anthropic"
        model = os.getenv("MODEL_NAME", "").strip() or DEFAULT_MODELS.get(provider, DEFAULT_MODELS["anthropic"])
        return cls(
            provider=provider,
            model=model,
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY", "").strip(),
            anthropic_base_url=(os.getenv("ANTHROPIC_BASE_URL", "").strip() or "https://api.anthropic.com").rstrip("/"),
            gemini_api_key=os.getenv("GEMINI_API_KEY", "").strip(),
            extract_max_tokens=_int("EXTRACT_MAX_TOKENS", 900),
            enrich_max_tokens=_int("ENRICH_MAX_TOKENS", 2000),
            enable_enrichment=_flag("ENABLE_ENRICHMENT", "1"),
            image_max_dim=_int("IMAGE_MAX_DIM", 1280),
            image_jpeg_quality=_int("IMAGE_JPEG_QUALITY", 82),
            model_timeout_seconds=_optional_float("MODEL_TIMEOUT_SECONDS"),
            debug=_flag("WINESNAP_DEBUG"),
        )


def get_settings() -> Settings:
    """FastAPI dependency. Re-reads the environment on every request."""
    return Settings.from_env()
