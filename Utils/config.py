import os
import tempfile

from dotenv import load_dotenv

load_dotenv()


def env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


class Config:
    # Secret key - validated in init_app
    SECRET_KEY = os.getenv("SECRET_KEY")
    DEBUG = os.getenv("FLASK_ENV") == "development"
    TESTING = False

    # Database
    MONGODB_URI = os.getenv("MONGODB_URI", "mongodb://localhost:27017/lostfound_db")
    MONGODB_MOCK = env_flag("MONGODB_MOCK")

    # Verification workflow
    INSTITUTION_DOMAIN = os.getenv("INSTITUTION_DOMAIN", "chitkara.edu.in")
    OTP_TTL_SECONDS = int(os.getenv("OTP_TTL_SECONDS", 600))
    SUBMISSION_QUOTA = int(os.getenv("SUBMISSION_QUOTA", 2))
    CLAIM_CONSUMES_VERIFICATION = env_flag("CLAIM_CONSUMES_VERIFICATION", "true")

    # Mail transport
    SMTP_HOST = os.getenv("SMTP_HOST", "localhost")
    SMTP_PORT = int(os.getenv("SMTP_PORT", 1025))
    SMTP_USER = os.getenv("SMTP_USER")
    SMTP_PASS = os.getenv("SMTP_PASS")
    SMTP_USE_TLS = env_flag("SMTP_USE_TLS")
    EMAIL_SENDER = os.getenv("EMAIL_SENDER", "noreply@lostfound.local")
    MAIL_BRAND = os.getenv("MAIL_BRAND", "Campus Navigator")

    # Rate limiting
    RATELIMIT_ENABLED = env_flag("RATELIMIT_ENABLED", "true")
    RATELIMIT_DEFAULT = os.getenv("RATELIMIT_DEFAULT", "200 per hour")
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    OTP_REQUEST_LIMIT = os.getenv("OTP_REQUEST_LIMIT", "5 per minute")

    # Logging
    LOG_DIR = os.getenv("LOG_DIR", "logs")
    LOG_RETENTION_DAYS = int(os.getenv("LOG_RETENTION_DAYS", 7))
    ENABLE_SMTP_ALERTS = env_flag("ENABLE_SMTP_ALERTS")

    # Uploads
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024  # 10MB
    PHOTO_MAX_WIDTH = int(os.getenv("PHOTO_MAX_WIDTH", 1400))

    @classmethod
    def init_app(cls, app):
        """Fill development defaults and refuse to boot production without a secret."""
        if not app.config["SECRET_KEY"]:
            if app.config["DEBUG"] or app.config["TESTING"]:
                app.config["SECRET_KEY"] = "dev-secret-key-for-development-only"
                app.logger.warning("Using default SECRET_KEY for development")
            else:
                raise ValueError("SECRET_KEY must be set in production")


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    MONGODB_URI = "mongodb://localhost:27017/lostfound_test"
    MONGODB_MOCK = True
    RATELIMIT_ENABLED = False
    INSTITUTION_DOMAIN = "chitkara.edu.in"
    LOG_DIR = os.path.join(tempfile.gettempdir(), "lostfound-test-logs")
