"""Run the demo application: ``python -m http_twins``."""

from __future__ import annotations

import uvicorn

from .app import create_app
from .config import Settings
from .logging_config import setup_logging


def main() -> None:
    settings = Settings.from_env()
    setup_logging(settings.log_level, settings.log_format)
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
