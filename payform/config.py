import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from payform.gateway import DECLINE_PROBABILITY
from payform.pipeline import PROCESSING_DELAY_SECONDS

load_dotenv()


def _env(key: str, default=None):
    v = os.getenv(key)
    return v if v not in (None, "") else default


@dataclass(frozen=True)
class Settings:
    database_url: Optional[str]
    processing_delay: float
    decline_rate: float
    log_level: str
    host: str
    port: int
    api_url: str


def load_settings() -> Settings:
    return Settings(
        database_url=_env("DATABASE_URL"),
        processing_delay=float(_env("PROCESSING_DELAY_SECONDS", PROCESSING_DELAY_SECONDS)),
        decline_rate=float(_env("DECLINE_PROBABILITY", DECLINE_PROBABILITY)),
        log_level=_env("LOG_LEVEL", "INFO").upper(),
        host=_env("HOST", "0.0.0.0"),
        port=int(_env("PORT", 8000)),
        api_url=_env("PAYFORM_API_URL", "http://127.0.0.1:8000").rstrip("/"),
    )
