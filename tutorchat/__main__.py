from __future__ import annotations

import os

import uvicorn

from tutorchat.config import get_settings
from tutorchat.log import configure_logging


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    port = int(os.environ.get("PORT", "8080"))
    uvicorn.run("tutorchat.main:app", host="0.0.0.0", port=port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
