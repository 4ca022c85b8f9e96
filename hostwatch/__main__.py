"""Run the agent with ``python -m hostwatch``."""

from __future__ import annotations

import logging

import uvicorn

from hostwatch.config import settings
from hostwatch.main import app


def main() -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
