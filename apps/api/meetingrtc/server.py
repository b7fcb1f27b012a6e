"""Console entry point that serves the API with uvicorn."""
from __future__ import annotations

import uvicorn

from .core.config import settings


def run() -> None:
    uvicorn.run(
        "meetingrtc.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=settings.app_env == "development",
    )


if __name__ == "__main__":
    run()
