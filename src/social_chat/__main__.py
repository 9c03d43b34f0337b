"""Entrypoint: python -m social_chat (runs the in-memory dev hub)."""
from __future__ import annotations

import uvicorn

from social_chat.config import settings


def main() -> None:
    uvicorn.run(
        "social_chat.app:create_app",
        factory=True,
        host=settings.HUB_HOST,
        port=settings.HUB_PORT,
        log_level="info",
    )


if __name__ == "__main__":
    main()
