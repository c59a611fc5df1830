from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path


class Settings(BaseSettings):
    APP_NAME: str = "Fintrack Backend"
    ENV: str = "dev"

    # SQLite file next to apps/backend so the CWD does not matter
    _default_db_path = Path(__file__).resolve().parents[2] / "db.sqlite3"
    DATABASE_URL: str = f"sqlite:///{_default_db_path}"

    CORS_ORIGINS: list[str] = ["*"]
    LOG_LEVEL: str = "INFO"

    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100
    DEFAULT_RULE_PRIORITY: int = 100

    model_config = SettingsConfigDict(env_file=(".env",), env_prefix="FINTRACK_", case_sensitive=False)


settings = Settings()
