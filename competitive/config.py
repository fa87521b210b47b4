"""
Configuration module for the competitive win/loss engine.
Centralizes environment variable access and analysis defaults.
"""

import os
from typing import List, Optional

from pydantic import BaseModel, Field


OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

PERPLEXITY_API_KEY = os.getenv("PERPLEXITY_API_KEY")
PERPLEXITY_MODEL = os.getenv("PERPLEXITY_MODEL", "sonar-pro")
PERPLEXITY_BASE_URL = "https://api.perplexity.ai"

GEMINI_API_KEY = os.getenv("GOOGLE_GEMINI_API_KEY") or os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")

PARSER_MODEL = os.getenv("PARSER_MODEL", OPENAI_MODEL)

MAX_QUERIES_PER_CATEGORY = int(os.getenv("MAX_QUERIES_PER_CATEGORY", "10"))
MODEL_CALL_DELAY_SECONDS = float(os.getenv("MODEL_CALL_DELAY_SECONDS", "0.5"))
_timeout = os.getenv("MODEL_CALL_TIMEOUT_SECONDS")
MODEL_CALL_TIMEOUT_SECONDS: Optional[float] = float(_timeout) if _timeout else None

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./competitive.db")

DEFAULT_MODELS = ["chatgpt", "perplexity", "gemini"]


class ProviderSettings(BaseModel):
    """Credentials and model names handed explicitly to the provider factories."""
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    perplexity_api_key: Optional[str] = None
    perplexity_model: str = "sonar-pro"
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.0-flash"
    parser_model: str = "gpt-4o-mini"


class AnalysisOptions(BaseModel):
    """Knobs for a single competitive analysis run."""
    max_queries_per_category: int = Field(default=MAX_QUERIES_PER_CATEGORY, ge=1)
    models: List[str] = Field(default_factory=lambda: list(DEFAULT_MODELS))
    delay_seconds: float = Field(default=MODEL_CALL_DELAY_SECONDS, ge=0)
    call_timeout_seconds: Optional[float] = MODEL_CALL_TIMEOUT_SECONDS


def load_provider_settings() -> ProviderSettings:
    """Build provider settings from the environment. Only called at the app edge."""
    return ProviderSettings(
        openai_api_key=OPENAI_API_KEY,
        openai_model=OPENAI_MODEL,
        perplexity_api_key=PERPLEXITY_API_KEY,
        perplexity_model=PERPLEXITY_MODEL,
        gemini_api_key=GEMINI_API_KEY,
        gemini_model=GEMINI_MODEL,
        parser_model=PARSER_MODEL,
    )


def is_model_enabled(settings: ProviderSettings, model: str) -> bool:
    """Check if the named assistant has credentials configured."""
    return bool({
        "chatgpt": settings.openai_api_key,
        "perplexity": settings.perplexity_api_key,
        "gemini": settings.gemini_api_key,
    }.get(model))


def get_enabled_models(settings: ProviderSettings) -> List[str]:
    """Get list of assistants that can be queried, in default order."""
    return [m for m in DEFAULT_MODELS if is_model_enabled(settings, m)]
