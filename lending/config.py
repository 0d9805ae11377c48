import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = "False") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class Settings:
    # Database
    database_file: str = os.getenv("LIBRARY_DB_FILE", "library.db")

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Email
    smtp_host: str = os.getenv("SMTP_HOST", "smtp.gmail.com")
    smtp_port: int = int(os.getenv("SMTP_PORT", "587"))
    smtp_username: Optional[str] = os.getenv("SMTP_USERNAME")
    smtp_password: Optional[str] = os.getenv("SMTP_PASSWORD")
    smtp_from_email: str = os.getenv("SMTP_FROM_EMAIL", "noreply@library.com")
    smtp_timeout: float = float(os.getenv("SMTP_TIMEOUT", "10"))
    email_domain: str = os.getenv("LIBRARY_EMAIL_DOMAIN", "example.com")
    enable_email_notifications: bool = _env_flag("ENABLE_EMAIL_NOTIFICATIONS")

    # Application
    app_name: str = os.getenv("APP_NAME", "Library Lending")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    debug: bool = _env_flag("DEBUG")


settings = Settings()
