import os
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent

USE_SQLITE = os.environ.get("BUDGETO_USE_SQLITE", "").strip().lower() in ("1", "true", "yes")
SQLITE_PATH = os.environ.get("BUDGETO_SQLITE_PATH", str(PROJECT_ROOT / "budgeto.db"))
JSON_PATH = os.environ.get("BUDGETO_JSON_PATH", str(PROJECT_ROOT / "budgeto.json"))
EXPORT_DIR = str(PROJECT_ROOT / "exports")

STORAGE_PREFIX = "budgeto."
TIMEZONE = "Europe/Copenhagen"
DEFAULT_CURRENCY = "DKK"
CURRENT_VERSION = 2

LOCK_STALE_MS = 5000
LOCK_RETRY_DELAY_S = 0.05
LOCK_MAX_ATTEMPTS = 10

DEV_MODE_ENV = "BUDGETO_DEV_MODE"
