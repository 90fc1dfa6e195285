import logging
import logging.handlers
from datetime import time
from pathlib import Path

from pydantic_settings import BaseSettings

from .cron.clock import parse_minute_of_day

DEFAULT_HADITH_SEND_TIME = time(9, 0)


class Settings(BaseSettings):
    database_url: str = "postgresql://hadith:hadith@db:5432/hadith_admin"
    secret_key: str = "change-me"
    environment: str = "production"

    # Admin bootstrap
    admin_email: str = ""
    admin_password: str = ""

    # Cron / job processor
    cron_timezone: str = "Africa/Cairo"
    hadith_send_time: str = "09:00"
    hadith_title: str = "حديث اليوم 🌿"
    cron_secret: str = ""
    cron_enabled: bool = True
    cron_interval_seconds: int = 60
    cron_boot_delay_seconds: int = 5
    recurring_cooldown_seconds: int = 90
    scheduled_grace_minutes: int = 0

    # Push delivery (Firebase Cloud Messaging)
    firebase_service_account_json: str = ""
    firebase_service_account_path: str = ""
    fcm_topic: str = "all"

    # HTTP
    rate_limit_login: str = "10/minute"
    cors_origins: str = "*"
    cors_allow_credentials: bool = True
    trusted_hosts: str = "*"

    # Logging
    log_level: str = "INFO"
    log_dir: str = "logs"
    log_max_bytes: int = 10_485_760  # 10 MB
    log_backup_count: int = 5

    model_config = {"env_file": ".env", "extra": "ignore"}

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def trusted_hosts_list(self) -> list[str]:
        return [h.strip() for h in self.trusted_hosts.split(",") if h.strip()] or ["*"]

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    @property
    def hadith_send_minute(self) -> time:
        """Daily hadith send time as a minute-of-day, 09:00 when malformed."""
        parsed = parse_minute_of_day(self.hadith_send_time)
        if parsed is None:
            logging.getLogger(__name__).warning(
                "Invalid HADITH_SEND_TIME %r, falling back to %s",
                self.hadith_send_time,
                DEFAULT_HADITH_SEND_TIME.strftime("%H:%M"),
            )
            return DEFAULT_HADITH_SEND_TIME
        return parsed


settings = Settings()


def setup_logging() -> None:
    """Configure application-wide logging with rotating file handlers.

    Creates three handlers:
    - Console: INFO+ with brief format (for docker compose logs)
    - app.log: DEBUG+ with detailed format, rotated at 10 MB x 5 backups
    - error.log: ERROR+ only, rotated at 10 MB x 5 backups
    """
    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    # --- Console handler (brief, for Docker logs / stdout) ---
    console = logging.StreamHandler()
    console.setLevel(logging.INFO)
    console.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    ))
    root.addHandler(console)

    # --- Rotating file handler (detailed, all levels) ---
    detail_fmt = logging.Formatter(
        "%(asctime)s %(levelname)-8s [%(name)s:%(funcName)s:%(lineno)d] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    app_handler = logging.handlers.RotatingFileHandler(
        log_dir / "app.log",
        maxBytes=settings.log_max_bytes,
        backupCount=settings.log_backup_count,
        encoding="utf-8",
    )
    app_handler.setLevel(logging.DEBUG)
    app_handler.setFormatter(detail_fmt)
    root.addHandler(app_handler)

    # --- Rotating error-only file handler ---
    err_handler = logging.handlers.RotatingFileHandler(
        log_dir / "error.log",
        maxBytes=settings.log_max_bytes,
        backupCount=settings.log_backup_count,
        encoding="utf-8",
    )
    err_handler.setLevel(logging.ERROR)
    err_handler.setFormatter(detail_fmt)
    root.addHandler(err_handler)

    # --- Quiet noisy third-party loggers ---
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("google").setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging configured: level=%s, dir=%s, max=%s MB x %d backups",
        settings.log_level, log_dir, settings.log_max_bytes // 1_048_576, settings.log_backup_count,
    )
