"""
Runtime settings read from the environment.
main.py loads .env before anything imports this module.
"""

import os
from pathlib import Path

DATA_DIR = Path.home() / "HouseholdFinance"

DATABASE_URL = os.environ.get("HOUSEHOLD_FINANCE_DATABASE_URL", "")

PORT = int(os.environ.get("HOUSEHOLD_FINANCE_PORT", 8000))

CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("HOUSEHOLD_FINANCE_CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]


# ── Import limits ──
def positive_int(name: str, default: int) -> int:
    """Read a limit from the environment; zero or negative values are rejected."""
    value = int(os.environ.get(name, default))
    if value < 1:
        raise ValueError(f"{name} must be at least 1, got {value}")
    return value


IMPORT_MAX_FILE_BYTES = positive_int("IMPORT_MAX_FILE_BYTES", 10 * 1024 * 1024)
IMPORT_MAX_SHEETS = positive_int("IMPORT_MAX_SHEETS", 24)
IMPORT_MAX_ROWS = positive_int("IMPORT_MAX_ROWS", 10000)
IMPORT_BATCH_SIZE = positive_int("IMPORT_BATCH_SIZE", 100)
