"""
Centralised configuration constants and environment helpers.
"""

import logging
import os
import sys

from dotenv import load_dotenv

load_dotenv()

# ── Sessions ─────────────────────────────────────────────────────────
SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-key-change-in-production")
TOKEN_ALGORITHM = "HS256"
TOKEN_EXPIRY_HOURS = int(os.getenv("TOKEN_EXPIRY_HOURS", "24"))

# ── Identity directory ───────────────────────────────────────────────
# "reject" refuses to delete an associate that still has customers,
# "nullify" clears the customers' assignment instead.
DELETE_POLICY = os.getenv("DELETE_POLICY", "reject").strip().lower()

# Optional database with a portal_users table of seed identities.
SEED_DB_URI = os.getenv("SEED_DB_URI")

# ── Reports ──────────────────────────────────────────────────────────
MAX_LOG_ROWS = 50

# ── Logging ──────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING").upper()
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOGGER_NAME = "finvault"


def get_env(name: str) -> str:
    """Return a required environment variable, exiting when it is unset."""
    value = os.getenv(name)
    if not value:
        print(f"ERROR: required setting {name} is missing (see .env.example)", file=sys.stderr)
        sys.exit(1)
    return value


def setup_logging(level: str = LOG_LEVEL) -> logging.Logger:
    """Attach a stream handler to the package logger (idempotent)."""
    logger = logging.getLogger(LOGGER_NAME)
    if logger.handlers:
        return logger

    logger.setLevel(level)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return logger
