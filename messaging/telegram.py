"""
Telegram Platform Adapter

Implements MessagingPlatform for Telegram using python-telegram-bot.
"""

import asyncio
import logging
import os

# Opt-in to future behavior for python-telegram-bot (retry_after as timedelta)
# This must be set BEFORE importing telegram.error
os.environ["PTB_TIMEDELTA"] = "1"

from typing import Callable, Awaitable, Optional, Any, Iterable

from telegram import Bot, Update
from telegram.constants import ChatMemberStatus
from telegram.ext import (
    Application,
    MessageHandler,
    ContextTypes,
    filters,
)
from telegram.error import TelegramError, RetryAfter, NetworkError
from telegram.request import HTTPXRequest

from .base import MessagingPlatform
from .limiter import MessageRateLimiter
from .models import IncomingMessage, AUDIO, VOICE
from . import texts

logger = logging.getLogger(__name__)

PREMIUM_MEMBER_STATUSES = {
    ChatMemberStatus.MEMBER,
    ChatMemberStatus.ADMINISTRATOR,
    ChatMemberStatus.OWNER,
}


class TelegramPlatform(MessagingPlatform):
    """
    Telegram messaging platform adapter.

    Uses python-telegram-bot (Bot API) for Telegram access.
    Requires a Bot Token from @BotFather.

    A user is premium when listed in ``premium_user_ids`` or, if
    ``premium_chat_id`` is set, when they are a member of that chat.
    """

    name = "telegram"

    def __init__(
        self,
        bot_token: Optional[str] = None,
        premium_user_ids: Optional[Iterable[str]] = None,
        premium_chat_id: Optional[str] = None,
        rate_limit: int = 20,
        rate_window: float = 1.0,
    ):
        self.bot_token = bot_token or os.getenv("TELEGRAM_BOT_TOKEN")
        self.premium_user_ids = {str(uid) for uid in (premium_user_ids or ())}
        self.premium_chat_id = premium_chat_id

        if not self.bot_token:
            # start() will fail; instantiation is still allowed for tests
            logger.warning("TELEGRAM_BOT_TOKEN not set")

        self._application: Optional[Application] = None
        self._message_handler: Optional[
            Callable[[IncomingMessage], Awaitable[None]]
        ] = None
        self._connected = False
        self._limiter = MessageRateLimiter(rate_limit, rate_window)

    @property
    def bot(self) -> Optional[Bot]:
        return self._application.bot if self._application else None

    def _build_application(self) -> Application:
        """
        Build the PTB application.

        Updates are processed concurrently: a long transcription must not
        hold back other users' commands and audio.
        """
        # Configure request with longer timeouts
        request = HTTPXRequest(
            connection_pool_size=8, connect_timeout=30.0, read_timeout=30.0
        )

        return (
            Application.builder()
            .token(self.bot_token)
            .request(request)
            .concurrent_updates(True)
            .build()
        )

    async def start(self) -> None:
        """Initialize and connect to Telegram."""
        if not self.bot_token:
            raise ValueError("TELEGRAM_BOT_TOKEN is required")

        self._application = self._build_application()

        # Commands and audio attachments are forwarded to the handler
        self._application.add_handler(
            MessageHandler(filters.VOICE | filters.AUDIO, self._on_telegram_message)
        )
        self._application.add_handler(
            MessageHandler(filters.COMMAND, self._on_telegram_message)
        )

        # Initialize internal components with retry logic
        max_retries = 3
        for attempt in range(max_retries):
            try:
                await self._application.initialize()
                await self._application.start()

                if self._application.updater:
                    await self._application.updater.start_polling(
                        drop_pending_updates=False
                    )

                self._connected = True
                break
            except (NetworkError, TelegramError) as e:
                if attempt < max_retries - 1:
                    wait_time = 2 * (attempt + 1)
                    logger.warning(
                        f"Connection failed (attempt {attempt + 1}/{max_retries}): {e}. Retrying in {wait_time}s..."
                    )
                    await asyncio.sleep(wait_time)
                else:
                    logger.error(f"Failed to connect after {max_retries} attempts")
                    raise

        logger.info("Telegram platform started (Bot API)")

    async def stop(self) -> None:
        """Stop the bot."""
        if self._application and self._application.updater:
            await self._application.updater.stop()
            await self._application.stop()
            await self._application.shutdown()

        self._connected = False
        logger.info("Telegram platform stopped")

    async def _with_retry(
        self, func: Callable[..., Awaitable[Any]], *args, **kwargs
    ) -> Any:
        """Helper to execute a function with exponential backoff on network errors."""
        max_retries = 3
        for attempt in range(max_retries):
            try:
                return await func(*args, **kwargs)
            except RetryAfter as e:
                # Telegram explicitly tells us to wait
                retry_after = e.retry_after
                if hasattr(retry_after, "total_seconds"):
                    wait_secs = float(retry_after.total_seconds())  # type: ignore
                else:
                    wait_secs = float(retry_after)

                logger.warning(f"Rate limited by Telegram, waiting {wait_secs}s...")
                self._limiter.pause(wait_secs)
                await asyncio.sleep(wait_secs)
                return await func(*args, **kwargs)
            except (NetworkError, asyncio.TimeoutError) as e:
                if attempt < max_retries - 1:
                    wait_time = 2**attempt  # 1s, 2s, 4s
                    logger.warning(
                        f"Telegram API network error (attempt {attempt + 1}/{max_retries}): {e}. Retrying in {wait_time}s..."
                    )
                    await asyncio.sleep(wait_time)
                else:
                    logger.error(
                        f"Telegram API failed after {max_retries} attempts: {e}"
                    )
                    raise

    async def send_message(
        self,
        chat_id: str,
        text: str,
        reply_to: Optional[str] = None,
        parse_mode: Optional[str] = None,
    ) -> str:
        """Send a message to a chat, throttled by the rate limiter."""
        if not self._application or not self._application.bot:
            raise RuntimeError("Telegram application or bot not initialized")

        async def _do_send():
            bot = self._application.bot  # type: ignore
            msg = await bot.send_message(
                chat_id=chat_id,
                text=text,
                reply_to_message_id=int(reply_to) if reply_to else None,
                parse_mode=parse_mode,
            )
            return str(msg.message_id)

        return await self._limiter.execute(lambda: self._with_retry(_do_send))

    async def is_premium(self, user_id: str, chat_id: str) -> bool:
        """Check configured premium ids, then membership of the premium chat."""
        if str(user_id) in self.premium_user_ids:
            return True

        if not self.premium_chat_id or not self.bot:
            return False

        try:
            member = await self._with_retry(
                self.bot.get_chat_member, chat_id=self.premium_chat_id, user_id=int(user_id)
            )
        except TelegramError as e:
            logger.warning(f"Premium membership lookup failed for {user_id}: {e}")
            return False

        return member.status in PREMIUM_MEMBER_STATUSES

    def on_message(
        self,
        handler: Callable[[IncomingMessage], Awaitable[None]],
    ) -> None:
        """Register a message handler callback."""
        self._message_handler = handler

    @property
    def is_connected(self) -> bool:
        """Check if connected."""
        return self._connected

    @staticmethod
    def _seconds(duration: Any) -> int:
        """Durations are timedelta with PTB_TIMEDELTA set, int otherwise."""
        if duration is None:
            return 0
        if hasattr(duration, "total_seconds"):
            return int(duration.total_seconds())
        return int(duration)

    @classmethod
    def to_incoming(cls, update: Update) -> Optional[IncomingMessage]:
        """Convert a Telegram update to an IncomingMessage, or None if unusable."""
        message = update.message
        if not message or not update.effective_user or not update.effective_chat:
            return None

        incoming = IncomingMessage(
            text=message.text or "",
            chat_id=str(update.effective_chat.id),
            user_id=str(update.effective_user.id),
            message_id=str(message.message_id),
            platform="telegram",
            first_name=update.effective_user.first_name,
            username=update.effective_user.username,
            raw_event=update,
        )

        if message.voice:
            incoming.audio_file_id = message.voice.file_id
            incoming.audio_duration = cls._seconds(message.voice.duration)
            incoming.audio_kind = VOICE
        elif message.audio:
            incoming.audio_file_id = message.audio.file_id
            incoming.audio_duration = cls._seconds(message.audio.duration)
            incoming.audio_kind = AUDIO

        return incoming

    async def _on_telegram_message(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """Handle incoming commands and audio."""
        incoming = self.to_incoming(update)
        if incoming is None:
            logger.warning("Update without message, user or chat ignored")
            return

        if not self._message_handler:
            logger.warning("No message handler registered")
            return

        if incoming.has_audio():
            logger.info(
                f"{incoming.audio_kind} received from {incoming.user_id}: "
                f"file_id={incoming.audio_file_id} ({incoming.audio_duration}s)"
            )

        try:
            await self._message_handler(incoming)
        except Exception as e:
            logger.error(f"Error processing message: {e}", exc_info=True)
            try:
                await self.send_message(incoming.chat_id, texts.TRY_AGAIN_LATER)
            except TelegramError as send_error:
                logger.warning(f"Could not send error message: {send_error}")
