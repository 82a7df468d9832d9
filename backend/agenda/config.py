# backend/agenda/config.py

from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]  # repo root


class Settings(BaseSettings):
    database_url: str = "sqlite:///./data/agenda.db"
    redis_url: str | None = None

    # Fixed local offset for every wall-clock value (UTC-3 by default)
    utc_offset_minutes: int = -180

    notify_webhook_url: str = ""
    notify_timeout_seconds: float = 5.0

    # 0 = periodic generation disabled
    auto_generate_days: int = 0
    auto_generate_interval_seconds: int = 3600

    generation_lock_timeout_seconds: int = 60

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        extra="ignore",
    )

    @property
    def resolved_database_url(self) -> str:
        url = self.database_url
        if url.startswith("sqlite:///./"):
            # Relative path → absolute, anchored at the repo root
            relative_path = url.replace("sqlite:///./", "")
            absolute_path = BASE_DIR / relative_path
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            return f"sqlite:///{absolute_path}"
        return url


settings = Settings()
