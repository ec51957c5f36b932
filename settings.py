# settings.py
import logging
import os
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv(override=True)

DEFAULT_MODEL_CANDIDATES = (
    "gemini-2.0-flash-exp,"
    "gemini-2.0-flash,"
    "gemini-1.5-flash,"
    "gemini-1.5-pro,"
    "gemini-1.0-pro"
)


def _split_csv(raw: str) -> List[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


class Settings(BaseModel):
    API_KEY: str = os.getenv("GOOGLE_GENAI_API_KEY", "")
    BASE_URL: str = os.getenv("GEMINI_BASE_URL", "https://generativelanguage.googleapis.com")
    API_VERSION: str = os.getenv("GEMINI_API_VERSION", "v1")
    MODEL_CANDIDATES: List[str] = Field(
        default_factory=lambda: _split_csv(os.getenv("MODEL_CANDIDATES", DEFAULT_MODEL_CANDIDATES))
    )
    STORAGE_PATH: str = os.getenv("CHAT_STORAGE_PATH", "chat_storage.json")
    # 10 exchanges
    HISTORY_LIMIT: int = 20
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    CORS_ALLOW_ORIGINS: List[str] = Field(
        default_factory=lambda: _split_csv(os.getenv("CORS_ALLOW_ORIGINS", "*"))
    )

    class Config:
        arbitrary_types_allowed = True


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )
