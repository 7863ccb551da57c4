"""Application configuration module."""

import os
from datetime import timedelta

DEFAULT_SECRET_KEY = "change-me"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    """Base configuration for the Flask application."""

    # Core
    APP_ENV = os.getenv("APP_ENV", "development")
    APP_VERSION = os.getenv("APP_VERSION", "0.1.0")
    APP_BASE_URL = os.getenv("APP_BASE_URL", "http://localhost:3000").rstrip("/")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    SECRET_KEY = os.getenv("SECRET_KEY", DEFAULT_SECRET_KEY)
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", SECRET_KEY)
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(
        seconds=int(os.getenv("JWT_ACCESS_TOKEN_EXPIRES", str(30 * 24 * 60 * 60)))
    )
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///app.db")
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # CORS
    _raw_origins = os.getenv("ORIGINS", "*")
    if _raw_origins.strip() == "*":
        CORS_ORIGINS = "*"
    else:
        CORS_ORIGINS = [o.strip() for o in _raw_origins.split(",") if o.strip()]

    # Rate limiting
    RATELIMIT_ENABLED = _env_bool("RATELIMIT_ENABLED", True)
    RATELIMIT_HEADERS_ENABLED = True
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATE_LIMIT = os.getenv("RATE_LIMIT", "100 per minute")
    LOGIN_RATE_LIMIT = os.getenv("LOGIN_RATE_LIMIT", "5 per 15 minutes")
    REGISTER_RATE_LIMIT = os.getenv("REGISTER_RATE_LIMIT", "3 per hour")
    FORGOT_PASSWORD_RATE_LIMIT = os.getenv("FORGOT_PASSWORD_RATE_LIMIT", "3 per hour")
    VERIFY_EMAIL_RATE_LIMIT = os.getenv("VERIFY_EMAIL_RATE_LIMIT", "10 per 15 minutes")
    REPORT_RATE_LIMIT = os.getenv("REPORT_RATE_LIMIT", "10 per minute")
    REPORTS_RATE_LIMIT = os.getenv("REPORTS_RATE_LIMIT", "30 per minute")
    ADMIN_RATE_LIMIT = os.getenv("ADMIN_RATE_LIMIT", "20 per minute")

    # Tokens and account lifecycle
    EMAIL_VERIFICATION_TTL_HOURS = int(os.getenv("EMAIL_VERIFICATION_TTL_HOURS", "24"))
    PASSWORD_RESET_TTL_HOURS = int(os.getenv("PASSWORD_RESET_TTL_HOURS", "1"))
    PENDING_USER_MAX_AGE_DAYS = int(os.getenv("PENDING_USER_MAX_AGE_DAYS", "7"))

    # Google APIs
    PAGESPEED_API_KEY = os.getenv("PAGESPEED_API_KEY")
    PAGESPEED_STRATEGY = os.getenv("PAGESPEED_STRATEGY", "mobile")
    PAGESPEED_TIMEOUT = int(os.getenv("PAGESPEED_TIMEOUT", "60"))
    GOOGLE_APPLICATION_CREDENTIALS_JSON = os.getenv("GOOGLE_APPLICATION_CREDENTIALS_JSON")
    SEARCH_CONSOLE_MAX_WORKERS = int(os.getenv("SEARCH_CONSOLE_MAX_WORKERS", "4"))

    # Mail (Flask-Mail)
    MAIL_SERVER = os.getenv("MAIL_SERVER") or os.getenv("SMTP_HOST")
    MAIL_PORT = int(os.getenv("MAIL_PORT") or os.getenv("SMTP_PORT") or "587")
    MAIL_USERNAME = os.getenv("MAIL_USERNAME") or os.getenv("SMTP_USER")
    MAIL_PASSWORD = os.getenv("MAIL_PASSWORD") or os.getenv("SMTP_PASS")
    MAIL_USE_SSL = _env_bool("MAIL_USE_SSL", MAIL_PORT == 465)
    MAIL_USE_TLS = _env_bool("MAIL_USE_TLS", not MAIL_USE_SSL)
    MAIL_DEFAULT_SENDER = (
        os.getenv("MAIL_DEFAULT_SENDER")
        or os.getenv("SMTP_FROM")
        or MAIL_USERNAME
        or "noreply@seo-dashboard.local"
    )
    MAIL_BRAND_NAME = os.getenv("MAIL_BRAND_NAME", "SEO Dashboard")


def is_production(config) -> bool:
    """Return True when the given config mapping targets production."""

    return str(config.get("APP_ENV", "")).lower() == "production"


def validate_config(config) -> tuple[list[str], list[str]]:
    """Return ``(errors, warnings)`` for an application config mapping."""

    errors: list[str] = []
    warnings: list[str] = []
    production = is_production(config)

    if not config.get("SQLALCHEMY_DATABASE_URI"):
        errors.append("Missing required setting: DATABASE_URL (database connection string)")

    jwt_secret = config.get("JWT_SECRET_KEY") or ""
    if production:
        if jwt_secret == DEFAULT_SECRET_KEY:
            errors.append("JWT_SECRET_KEY must be changed from the default value in production")
        elif len(jwt_secret) < 32:
            errors.append("JWT_SECRET_KEY must be at least 32 characters")
        if not config.get("PAGESPEED_API_KEY"):
            errors.append("Missing required setting: PAGESPEED_API_KEY (Google PageSpeed Insights API key)")
        if not str(config.get("APP_BASE_URL", "")).startswith("https://"):
            warnings.append("APP_BASE_URL should use HTTPS in production")
    elif not config.get("PAGESPEED_API_KEY"):
        warnings.append("PAGESPEED_API_KEY is not set; report generation will fail")

    if not config.get("GOOGLE_APPLICATION_CREDENTIALS_JSON"):
        warnings.append("GOOGLE_APPLICATION_CREDENTIALS_JSON is not set; Search Console is disabled")
    if not config.get("MAIL_SERVER"):
        warnings.append("MAIL_SERVER is not set; emails will be logged instead of sent")

    return errors, warnings
