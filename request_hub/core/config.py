from dataclasses import dataclass
from pathlib import Path
import os


@dataclass(frozen=True)
class Settings:
    app_name: str = "Request Hub"
    api_version: str = "v1"
    secret_key: str = os.getenv("REQUEST_HUB_SECRET_KEY", "change-me-for-production")
    algorithm: str = "HS256"
    data_dir: Path = Path(os.getenv("REQUEST_HUB_DATA_DIR", str(Path(__file__).resolve().parents[2] / "data")))
    storage_backend: str = os.getenv("REQUEST_HUB_STORAGE_BACKEND", "file")
    storage_key: str = os.getenv("REQUEST_HUB_STORAGE_KEY", "jd-requests")
    sweep_interval_seconds: float = float(os.getenv("REQUEST_HUB_SWEEP_INTERVAL_SECONDS", "60"))
    expiry_days: int = int(os.getenv("REQUEST_HUB_EXPIRY_DAYS", "1"))
    archive_retention_days: int = int(os.getenv("REQUEST_HUB_ARCHIVE_RETENTION_DAYS", "7"))
    recent_activity_limit: int = int(os.getenv("REQUEST_HUB_RECENT_ACTIVITY_LIMIT", "3"))
    notification_feed_size: int = int(os.getenv("REQUEST_HUB_NOTIFICATION_FEED_SIZE", "50"))
    log_file: str = os.getenv("REQUEST_HUB_LOG_FILE", "request-hub.log")
    log_level: str = os.getenv("REQUEST_HUB_LOG_LEVEL", "INFO")
    log_max_bytes: int = int(os.getenv("REQUEST_HUB_LOG_MAX_BYTES", "1000000"))
    log_backup_count: int = int(os.getenv("REQUEST_HUB_LOG_BACKUP_COUNT", "3"))


settings = Settings()
settings.data_dir.mkdir(parents=True, exist_ok=True)
