import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        api_base_url: str,
        api_timeout_secs: float,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.api_base_url = api_base_url
        self.api_timeout_secs = api_timeout_secs


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("EXPENSEFLOW_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "expenseflow.db"
    database_url = os.getenv("EXPENSEFLOW_DATABASE_URL", f"sqlite:///{default_db}")
    timezone = os.getenv("EXPENSEFLOW_TIMEZONE", "UTC")
    api_base_url = os.getenv("EXPENSEFLOW_API_URL", "http://localhost:8080")
    api_timeout_secs = float(os.getenv("EXPENSEFLOW_API_TIMEOUT_SECS", "10"))
    return Settings(
        database_url=database_url,
        timezone=timezone,
        api_base_url=api_base_url.rstrip("/"),
        api_timeout_secs=api_timeout_secs,
    )
