import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str
    site_name: str

    session_ttl_hours: int
    require_email_confirmation: bool

    smtp_host: str
    smtp_port: int
    smtp_username: str
    smtp_password: str
    smtp_use_tls: bool
    mail_from: str


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getflag(name: str, default: str = "0") -> bool:
    return _getenv(name, default).lower() in ("1", "true", "yes", "on")


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///community.db"),
        site_name=_getenv("SITE_NAME", "AI Collective Kenya"),
        session_ttl_hours=int(_getenv("SESSION_TTL_HOURS", "168")),
        require_email_confirmation=_getflag("REQUIRE_EMAIL_CONFIRMATION", "1"),
        smtp_host=_getenv("SMTP_HOST", ""),
        smtp_port=int(_getenv("SMTP_PORT", "587")),
        smtp_username=_getenv("SMTP_USERNAME", ""),
        smtp_password=_getenv("SMTP_PASSWORD", ""),
        smtp_use_tls=_getflag("SMTP_USE_TLS", "1"),
        mail_from=_getenv("MAIL_FROM", ""),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "SITE_NAME": s.site_name,
        "SESSION_TTL_HOURS": s.session_ttl_hours,
        "REQUIRE_EMAIL_CONFIRMATION": s.require_email_confirmation,
        "SMTP_HOST": s.smtp_host,
        "SMTP_PORT": s.smtp_port,
        "SMTP_USERNAME": s.smtp_username,
        "SMTP_PASSWORD": s.smtp_password,
        "SMTP_USE_TLS": s.smtp_use_tls,
        "MAIL_FROM": s.mail_from or s.smtp_username,
        # security defaults
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,
        # forms only, no uploads
        "MAX_CONTENT_LENGTH": 1 * 1024 * 1024,
    }
