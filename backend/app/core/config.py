import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List

from dotenv import load_dotenv

from .paths import get_default_db_url

DEMO_USER_ID = "00000000-0000-0000-0000-000000000000"

_DEFAULT_CORS_ORIGINS = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]


def _split_csv(raw: str) -> List[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


@dataclass(frozen=True)
class Settings:
    database_url: str
    gemini_api_key: str = ""
    gemini_model: str = "gemini-1.5-flash"
    gemini_api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    generation_max_attempts: int = 3
    generation_base_delay: float = 2.0
    generation_timeout: float = 60.0
    user_id: str = DEMO_USER_ID
    cors_origins: List[str] = field(default_factory=lambda: list(_DEFAULT_CORS_ORIGINS))
    log_level: str = "INFO"


def load_settings() -> Settings:
    load_dotenv()
    env = os.environ
    cors = _split_csv(env.get("CHAT_CORS_ORIGINS", ""))
    return Settings(
        database_url=env.get("CHAT_DATABASE_URL", "").strip() or get_default_db_url(),
        gemini_api_key=env.get("GEMINI_API_KEY", "").strip(),
        gemini_model=env.get("GEMINI_MODEL", "").strip() or "gemini-1.5-flash",
        gemini_api_base=env.get("GEMINI_API_BASE", "").strip()
        or "https://generativelanguage.googleapis.com/v1beta",
        generation_max_attempts=max(1, int(env.get("GENERATION_MAX_ATTEMPTS", "3"))),
        generation_base_delay=float(env.get("GENERATION_BASE_DELAY", "2.0")),
        generation_timeout=float(env.get("GENERATION_TIMEOUT", "60.0")),
        user_id=env.get("CHAT_USER_ID", "").strip() or DEMO_USER_ID,
        cors_origins=cors or list(_DEFAULT_CORS_ORIGINS),
        log_level=(env.get("CHAT_LOG_LEVEL", "").strip() or "INFO").upper(),
    )


@lru_cache()
def get_settings() -> Settings:
    return load_settings()
