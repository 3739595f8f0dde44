"""
Household Finance — FastAPI Backend
Main entry point. Registers routers and initializes the database.
"""

import logging
from pathlib import Path
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

from . import __version__

logger = logging.getLogger(__name__)

# Load .env from ~/HouseholdFinance/.env first, then fall back to CWD/.env.
# Second call is a no-op for vars already set by the first.
load_dotenv(dotenv_path=Path.home() / "HouseholdFinance" / ".env")
load_dotenv()

from . import config  # noqa: E402 — reads the environment loaded above
from .database import init_db  # noqa: E402
from .migrations import run_migrations  # noqa: E402
from .routers import import_file  # noqa: E402


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run on startup: create tables and apply column migrations."""
    init_db()
    run_migrations()
    logger.info("Household finance backend ready")
    yield


app = FastAPI(
    title="Household Finance",
    description="Shared household finance tracker with bank statement import",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(import_file.router, prefix="/api/import", tags=["Statement Import"])


@app.get("/health")
def health_check():
    """Health check endpoint used by the front end to verify the backend is up."""
    return {"status": "ok", "version": __version__}
