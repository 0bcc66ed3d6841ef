"""
Audio Transcription Bot - server entry point.

Runs the FastAPI app; its lifespan starts the Telegram bot, so a single
process serves both the bot and the quota API.
"""

import uvicorn

from api.app import setup_logging
from config.settings import get_settings


def main() -> None:
    settings = get_settings()
    setup_logging(settings.log_file)
    uvicorn.run(
        "api.app:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level="warning",
    )


if __name__ == "__main__":
    main()
