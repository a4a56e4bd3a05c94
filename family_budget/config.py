"""Configuration for the family budget tracker.

All values can be overridden with environment variables so the same code runs
against a local JSON directory, an in-memory store or a Firebase database.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

DATA_DIR = Path(os.getenv("FAMILY_BUDGET_DATA_DIR", _PROJECT_ROOT / "data")).resolve()

# memory | file | firebase
STORAGE_BACKEND = os.getenv("FAMILY_BUDGET_STORAGE", "file")

# Fixed USD -> ARS factor, no live rates.
USD_TO_ARS = float(os.getenv("FAMILY_BUDGET_USD_RATE", "1000"))

TRANSACTIONS_KEY = "transactions"
CATEGORIES_KEY = "custom-categories"

# Both collections are shared with the family by default.
SHARED = os.getenv("FAMILY_BUDGET_SHARED", "1") not in ("0", "false", "False")

# Used for non-shared keys.
USER_ID = os.getenv("FAMILY_BUDGET_USER", "default")

MONTHLY_POINTS = 6

LOG_LEVEL = os.getenv("FAMILY_BUDGET_LOG_LEVEL", "INFO")

FIREBASE_CONFIG = {
    "api_key": os.getenv("FIREBASE_API_KEY", ""),
    "auth_domain": os.getenv("FIREBASE_AUTH_DOMAIN", ""),
    "project_id": os.getenv("FIREBASE_PROJECT_ID", ""),
    "database_url": os.getenv("FIREBASE_DATABASE_URL", ""),
    "storage_bucket": os.getenv("FIREBASE_STORAGE_BUCKET", ""),
    "app_id": os.getenv("FIREBASE_APP_ID", ""),
}
FIREBASE_AUTH_TOKEN = os.getenv("FIREBASE_AUTH_TOKEN", "")
FIREBASE_PREFIX = os.getenv("FIREBASE_PREFIX", "family-budget")
FIREBASE_TIMEOUT = float(os.getenv("FIREBASE_TIMEOUT", "10"))


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def ensure_data_dir() -> Path:
    """Create the data directory if it doesn't exist."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    return DATA_DIR
