"""
Run the HackPulse API server

Usage:
    python -m app.main
"""

import uvicorn

from app.api.main import create_app
from app.config.settings import settings
from app.utils.logger import setup_logging


def main() -> None:
    setup_logging(settings.LOG_LEVEL)
    uvicorn.run(
        create_app(settings),
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
