# backend/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    DATABASE_URL: str = "sqlite:///./database_stockapp.db"

    FRONTEND_URL: str = "http://localhost:5173"
    UPLOAD_DIR: str = "static/uploads"
    LOG_LEVEL: str = "INFO"

    # Stock policy: approvals may drive stock below zero unless disabled
    ALLOW_NEGATIVE_STOCK: bool = True
    # Exit requests whose reason starts with this marker carry a counted stock value
    DISCREPANCY_MARKER: str = "Écart de stock signalé"

    # Trailing windows (days) for consumption statistics and history views
    CONSUMPTION_WINDOW_DAYS: int = 30
    HISTORY_WINDOW_DAYS: int = 30

    model_config = SettingsConfigDict(env_file=str(env_path), extra="ignore")

settings = Settings()
