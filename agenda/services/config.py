from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    use_real_llm: bool = False
    openrouter_api_key: Optional[str] = None
    openrouter_model: str = "google/gemini-2.5-flash"
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    llm_timeout_seconds: float = 45.0
    llm_temperature: float = 0.7
    database_path: str = "./data/agenda.db"
    api_port: int = 8000
    frontend_url: str = "http://localhost:5173"
    log_level: str = "INFO"

    # Currency minor units per hour of work (Kz)
    hourly_rate: float = 5000
    invoice_grace_days: int = 7

    @property
    def resolved_database_path(self) -> Path:
        path = Path(self.database_path)
        if path.is_absolute():
            return path
        return Path(__file__).resolve().parents[2] / path


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
