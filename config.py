import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as walkbook.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "walkbook.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Session cookie issued by the login service in front of this API
    AUTH_COOKIE_NAME = "walkbook_session"

    # 8 hours session lifetime
    SESSION_LIFETIME_SECONDS = 8 * 60 * 60

    # Idle timeout: 20 minutes
    IDLE_TIMEOUT_SECONDS = 20 * 60

    # Background notification pool
    NOTIFICATION_WORKERS = int(os.getenv("NOTIFICATION_WORKERS", "4"))
    NOTIFICATIONS_INLINE = False

    # Reminder look-ahead window, minutes from now
    REMINDER_WINDOW_START_MINUTES = int(os.getenv("REMINDER_WINDOW_START_MINUTES", "60"))
    REMINDER_WINDOW_END_MINUTES = int(os.getenv("REMINDER_WINDOW_END_MINUTES", "120"))

    # Email (SMTP)
    EMAIL_ENABLED = os.getenv("EMAIL_ENABLED", "true").lower() == "true"
    SMTP_HOST = os.getenv("SMTP_HOST")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME = os.getenv("SMTP_USERNAME")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL")
    SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"

    # Basic app settings
    DEBUG = False


class TestConfig(Config):
    TESTING = True
    # set per test run by tests/conftest.py
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_ENGINE_OPTIONS = {"connect_args": {"timeout": 30, "check_same_thread": False}}
    EMAIL_ENABLED = False
    NOTIFICATIONS_INLINE = True
