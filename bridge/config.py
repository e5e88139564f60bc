"""Configuration loaded from environment variables."""

import os

from dotenv import load_dotenv

load_dotenv()


class ConfigError(Exception):
    """Raised when required settings are missing or invalid."""


# Parse failures are reported by validate(), not at import.
_errors = []


def _int(name, default):
    raw = os.getenv(name, "")
    if not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        _errors.append(f"{name} must be an integer, got {raw!r}")
        return default


# Telegram
TELEGRAM_TOKEN = os.getenv("TELEGRAM_TOKEN", "")
TELEGRAM_CHAT_ID = _int("TELEGRAM_CHAT_ID", 0)
LONG_POLL_TIMEOUT_SECONDS = _int("LONG_POLL_TIMEOUT_SECONDS", 60)

# GitHub
GITHUB_TOKEN = os.getenv("GITHUB_TOKEN", "")
GITHUB_API_URL = os.getenv("GITHUB_API_URL", "https://api.github.com")

# Webhook server
HOST = os.getenv("HOST", "0.0.0.0")
PORT = _int("PORT", 8080)
WEBHOOK_PATH = os.getenv("WEBHOOK_PATH", "/github")

# Intake queue
DB_PATH = os.getenv("DB_PATH", "./data/db/bridge.db")
VISIBILITY_TIMEOUT_SECONDS = _int("VISIBILITY_TIMEOUT_SECONDS", 30)
DISPATCH_INTERVAL_SECONDS = _int("DISPATCH_INTERVAL_SECONDS", 5)

# Correlation
CORRELATION_MAX_ENTRIES = _int("CORRELATION_MAX_ENTRIES", 10000)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def validate():
    """Fail fast when the bridge cannot possibly start."""
    if _errors:
        raise ConfigError("; ".join(_errors))
    missing = [
        name
        for name, value in (
            ("TELEGRAM_TOKEN", TELEGRAM_TOKEN),
            ("TELEGRAM_CHAT_ID", TELEGRAM_CHAT_ID),
            ("GITHUB_TOKEN", GITHUB_TOKEN),
        )
        if not value
    ]
    if missing:
        raise ConfigError(f"Missing required settings: {', '.join(missing)}")
    if not WEBHOOK_PATH.startswith("/"):
        raise ConfigError(f"WEBHOOK_PATH must start with '/', got {WEBHOOK_PATH!r}")
