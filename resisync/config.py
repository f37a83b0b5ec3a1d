"""Application configuration helpers."""

from dataclasses import dataclass, field
import os
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv


load_dotenv()


def _env_flag(name: str, default: str = "true") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class Settings:
    """Holds runtime configuration loaded from the environment."""

    openai_api_key: Optional[str] = None
    analysis_model: str = "o4-mini"
    fallback_model: str = "gpt-4.1-mini"
    chat_model: str = "gpt-4.1-mini"
    fast_model: str = "gpt-4.1-nano"
    reasoning_effort: str = "medium"
    request_timeout: float = 45.0
    max_output_tokens: int = 2048
    storage_path: str = ".resisync/storage.json"
    debounce_seconds: float = 2.0
    seed_demo_trips: bool = True
    exa_api_key: Optional[str] = None
    exa_search_url: str = "https://api.exa.ai/search"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load and cache settings so every module shares the same values."""

    cors = os.getenv("RESISYNC_CORS_ORIGINS")
    return Settings(
        openai_api_key=os.getenv("OPENAI_API_KEY"),
        analysis_model=os.getenv("RESISYNC_ANALYSIS_MODEL", "o4-mini"),
        fallback_model=os.getenv("RESISYNC_FALLBACK_MODEL", "gpt-4.1-mini"),
        chat_model=os.getenv("RESISYNC_CHAT_MODEL", "gpt-4.1-mini"),
        fast_model=os.getenv("RESISYNC_FAST_MODEL", "gpt-4.1-nano"),
        reasoning_effort=os.getenv("RESISYNC_REASONING_EFFORT", "medium"),
        request_timeout=float(os.getenv("RESISYNC_REQUEST_TIMEOUT", "45")),
        max_output_tokens=int(os.getenv("RESISYNC_MAX_OUTPUT_TOKENS", "2048")),
        storage_path=os.getenv("RESISYNC_STORAGE_PATH", ".resisync/storage.json"),
        debounce_seconds=float(os.getenv("RESISYNC_DEBOUNCE_SECONDS", "2.0")),
        seed_demo_trips=_env_flag("RESISYNC_SEED_DEMO_TRIPS"),
        exa_api_key=os.getenv("EXA_API_KEY"),
        exa_search_url=os.getenv("EXA_SEARCH_URL", "https://api.exa.ai/search"),
        cors_origins=[o.strip() for o in cors.split(",") if o.strip()] if cors else ["*"],
    )
