"""FastAPI application hosting the transcription bot."""

import os

# Opt-in to future behavior for python-telegram-bot
os.environ["PTB_TIMEDELTA"] = "1"

import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from config.settings import Settings, get_settings
from quota.errors import ErrorKind, QuotaError
from quota.ledger import JsonQuotaLedger, QuotaLedger, RedisQuotaLedger
from quota.period import make_period_key_func
from quota.service import QuotaService
from quota.tiers import Tier, TierLimits

logger = logging.getLogger(__name__)


def setup_logging(log_file: str) -> None:
    """Configure logging once; hot reloads keep the existing handlers."""
    if logging.root.handlers:
        return

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        handlers=[
            logging.FileHandler(log_file, encoding="utf-8", mode="a"),
            logging.StreamHandler(),
        ],
    )

    # Suppress noisy library logs
    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("telegram").setLevel(logging.WARNING)


def build_ledger(settings: Settings) -> QuotaLedger:
    """Redis when REDIS_URL is configured, otherwise the JSON file ledger."""
    if settings.redis_url:
        logger.info(f"Using Redis quota ledger (period: {settings.quota_period})")
        return RedisQuotaLedger.from_url(settings.redis_url, period=settings.quota_period)

    logger.info(
        f"Using JSON quota ledger at {settings.quota_storage_path} (period: {settings.quota_period})"
    )
    return JsonQuotaLedger(
        storage_path=settings.quota_storage_path,
        period_key_func=make_period_key_func(settings.quota_period),
    )


def build_quota_service(settings: Settings, ledger: QuotaLedger) -> QuotaService:
    limits = TierLimits(
        free_cap=settings.free_tier_cap_seconds,
        premium_cap=settings.premium_tier_cap_seconds,
    )
    return QuotaService(ledger, limits, strict=settings.strict_quota)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()
    logger.info("Starting transcription bot...")

    ledger = getattr(app.state, "ledger", None) or build_ledger(settings)
    quota_service = build_quota_service(settings, ledger)

    messaging_platform = None
    voice_processor = None

    try:
        if settings.telegram_bot_token:
            from messaging.telegram import TelegramPlatform
            from messaging.handler import TranscriptionHandler
            from messaging.voice_processor import VoiceProcessor

            messaging_platform = TelegramPlatform(
                bot_token=settings.telegram_bot_token,
                premium_user_ids=settings.premium_user_id_set,
                premium_chat_id=settings.premium_chat_id,
                rate_limit=settings.messaging_rate_limit,
                rate_window=settings.messaging_rate_window,
            )

            voice_processor = VoiceProcessor(get_bot=lambda: messaging_platform.bot)
            # Load Whisper at startup so configuration errors show up early
            await voice_processor.initialize()

            message_handler = TranscriptionHandler(
                platform=messaging_platform,
                quota=quota_service,
                decoder=voice_processor,
                max_message_length=settings.max_message_length,
                decode_timeout=settings.transcription_timeout,
            )
            messaging_platform.on_message(message_handler.handle_message)

            await messaging_platform.start()
            logger.info("Telegram platform started with transcription handler")
        else:
            logger.warning("TELEGRAM_BOT_TOKEN not set, running API only")
    except Exception as e:
        logger.error(f"Failed to start messaging platform: {e}", exc_info=True)

    # Store in app state for access in routes
    app.state.messaging_platform = messaging_platform
    app.state.quota_service = quota_service

    yield

    # Cleanup
    if messaging_platform:
        await messaging_platform.stop()
    if voice_processor:
        await voice_processor.cleanup()
    await ledger.close()
    logger.info("Server shutting down...")


def create_app(ledger: Optional[QuotaLedger] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        ledger: Ledger to use instead of the one built from settings
    """
    app = FastAPI(
        title="Audio Transcription Bot",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.ledger = ledger

    @app.get("/health")
    async def health(request: Request):
        platform = request.app.state.messaging_platform
        return {
            "status": "ok",
            "telegram_connected": bool(platform and platform.is_connected),
        }

    @app.get("/quota/{user_id}")
    async def get_quota(user_id: str, request: Request):
        """Consumed and remaining seconds for both tiers."""
        quota_service: QuotaService = request.app.state.quota_service
        tiers = {}
        for tier in (Tier.FREE, Tier.PREMIUM):
            try:
                usage = await quota_service.usage(user_id, tier)
            except QuotaError as e:
                if e.kind == ErrorKind.PERIOD_CAP_EXCEEDED:
                    raise HTTPException(status_code=403, detail="User is blocked")
                raise HTTPException(status_code=503, detail="Quota ledger unavailable")
            tiers[tier.value] = {
                "consumed_seconds": usage.consumed_seconds,
                "cap_seconds": usage.cap_seconds,
                "remaining_seconds": usage.remaining_seconds,
            }
        return {"user_id": user_id, "tiers": tiers}

    @app.exception_handler(Exception)
    async def general_error_handler(request: Request, exc: Exception):
        """Handle unexpected errors without leaking internals."""
        logger.error(f"General Error: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "type": "error",
                "error": {
                    "type": "api_error",
                    "message": "An unexpected error occurred.",
                },
            },
        )

    return app
