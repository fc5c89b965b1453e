import os
from dotenv import load_dotenv
load_dotenv()

class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///feed_digest.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # sqlite waits on the writer lock instead of failing straight away
    SQLALCHEMY_ENGINE_OPTIONS = {"connect_args": {"timeout": 30}} if SQLALCHEMY_DATABASE_URI.startswith("sqlite") else {}
    REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    SENDGRID_API_KEY = os.getenv("SENDGRID_API_KEY")
    MAIL_FROM = os.getenv("MAIL_FROM", "notifications@example.com")
    MAIL_FROM_NAME = os.getenv("MAIL_FROM_NAME", "Feed Digest")
    APP_ENV = os.getenv("APP_ENV", "production")
    APP_URL = os.getenv("APP_URL", "http://localhost:5000")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # digest mutex
    LOCK_MAX_ATTEMPTS = int(os.getenv("LOCK_MAX_ATTEMPTS", "100"))
    LOCK_BACKOFF_MIN_MS = int(os.getenv("LOCK_BACKOFF_MIN_MS", "100"))
    LOCK_BACKOFF_MAX_MS = int(os.getenv("LOCK_BACKOFF_MAX_MS", "200"))

    # periodic updates email, UTC
    UPDATES_CRON_HOUR = int(os.getenv("UPDATES_CRON_HOUR", "0"))
    UPDATES_CRON_MINUTE = int(os.getenv("UPDATES_CRON_MINUTE", "0"))
    ITEM_TRIM_LENGTH_PRIMARY = int(os.getenv("ITEM_TRIM_LENGTH_PRIMARY", "500"))
    ITEM_TRIM_LENGTH_SECONDARY = int(os.getenv("ITEM_TRIM_LENGTH_SECONDARY", "250"))
    DEMO_ORG_NAME = os.getenv("DEMO_ORG_NAME", "DEMO")


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {"connect_args": {"timeout": 30}}
    SENDGRID_API_KEY = "test-key"
    APP_ENV = "test"
    APP_URL = "http://digest.test"
    REDIS_URL = None
    LOCK_BACKOFF_MIN_MS = 1
    LOCK_BACKOFF_MAX_MS = 5
