"""
Entry point for the household finance backend.
Launches uvicorn with the FastAPI app object directly.

    python -m household_finance.run_app
"""

import logging

import uvicorn

from .main import app
from . import config


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    uvicorn.run(app, host="127.0.0.1", port=config.PORT)


if __name__ == "__main__":
    main()
