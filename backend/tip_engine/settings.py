from pydantic import BaseModel
from dotenv import load_dotenv
import os

load_dotenv()


class Settings(BaseModel):
    host: str = os.getenv("BACKEND_HOST", "0.0.0.0")
    port: int = int(os.getenv("BACKEND_PORT", "8000"))
    cors_origins: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Namespace for persisted keys, one per storage origin
    storage_prefix: str = os.getenv("STORAGE_PREFIX", "aichat")

    # Visitor state windows
    returning_min_minutes: float = float(
        os.getenv("RETURNING_MIN_MINUTES", "2"))
    returning_max_minutes: float = float(
        os.getenv("RETURNING_MAX_MINUTES", "10"))
    reconnect_min_minutes: float = float(
        os.getenv("RECONNECT_MIN_MINUTES", "10"))
    reconnect_max_days: float = float(os.getenv("RECONNECT_MAX_DAYS", "7"))

    # Tip timing
    active_return_recent_hours: float = float(
        os.getenv("ACTIVE_RETURN_RECENT_HOURS", "24"))
    page_return_debounce_ms: int = int(
        os.getenv("PAGE_RETURN_DEBOUNCE_MS", "500"))


settings = Settings()
