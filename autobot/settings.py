"""Process settings read from the environment and an optional .env file."""

from functools import lru_cache
from pathlib import Path
from typing import List, Literal, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

_PROJECT_ROOT = Path(__file__).resolve().parent.parent

load_dotenv(_PROJECT_ROOT / ".env")


class Settings(BaseSettings):
    app_name: str = "autobot"
    storage_backend: Literal["sqlalchemy", "json"] = "sqlalchemy"
    database_url: str = "sqlite:///data/autobot.db"
    data_dir: Path = Path("data")
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 3001
    probe_command: List[str] = Field(default_factory=lambda: ["node", "scripts/azure-capabilities.mjs"])
    probe_timeout_seconds: float = 120.0
    completion_timeout_seconds: float = 60.0
    default_model: Optional[str] = None
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])


@lru_cache()
def get_settings() -> Settings:
    return Settings()
