"""
Voice and audio decoding for the transcription handler.

Downloads the attachment from Telegram and transcribes it with Whisper.
Every failure surfaces as DecodeFailedError.
"""

import logging
from typing import Optional, Callable

from .models import IncomingMessage
from quota.errors import DecodeFailedError
from services.telegram_audio import TelegramAudioDownloader
from services.transcription import TranscriptionService

logger = logging.getLogger(__name__)


class VoiceProcessor:
    """
    Turns an audio or voice message into text.

    The Whisper model is created at startup; the downloader is created as
    soon as the bot instance is available.
    """

    def __init__(self, get_bot: Optional[Callable] = None):
        """
        Initialize voice processor.

        Args:
            get_bot: Function that returns the Telegram bot instance
        """
        self.audio_downloader: Optional[TelegramAudioDownloader] = None
        self.transcription_service: Optional[TranscriptionService] = None
        self._get_bot = get_bot
        self._initialized = False

    def _ensure_downloader(self) -> None:
        if self.audio_downloader or not self._get_bot:
            return
        bot = self._get_bot()
        if bot:
            self.audio_downloader = TelegramAudioDownloader(bot=bot)
            logger.info("TelegramAudioDownloader ready")

    async def initialize(self) -> None:
        """
        Initialize voice processing services.

        Should be called during startup, not when first needed.
        """
        if self._initialized:
            return

        from config import settings

        logger.info(f"Initializing TranscriptionService (model: {settings.whisper_model})")
        self.transcription_service = TranscriptionService(
            model=settings.whisper_model,
            device=settings.whisper_device,
        )
        logger.info("TranscriptionService ready")

        self._ensure_downloader()
        self._initialized = True
        logger.info("VoiceProcessor initialized")

    async def decode(self, incoming: IncomingMessage) -> str:
        """
        Transcribe the audio attached to ``incoming``.

        Returns:
            The transcript (possibly empty)

        Raises:
            DecodeFailedError: If the message has no audio, or download or
                transcription fails
        """
        if not incoming.has_audio():
            raise DecodeFailedError(f"Message {incoming.message_id} has no audio attachment")

        logger.info(
            f"Decoding {incoming.audio_kind} message: file_id={incoming.audio_file_id} "
            f"({incoming.audio_duration}s)"
        )

        if not self.transcription_service:
            await self.initialize()

        self._ensure_downloader()
        if not self.audio_downloader:
            raise DecodeFailedError("Audio downloader not initialized")

        from config import settings

        try:
            transcription = await self.audio_downloader.download_and_transcribe(
                file_id=incoming.audio_file_id,
                transcription_service=self.transcription_service,
                output_dir=settings.audio_download_dir,
                language=settings.whisper_language,
                is_voice=incoming.is_voice(),
            )
        except Exception as e:
            raise DecodeFailedError(f"Failed to decode {incoming.audio_file_id}: {e}") from e

        preview = transcription[:100] + "..." if len(transcription) > 100 else transcription
        logger.info(f"Decode successful: {len(transcription)} chars - {preview}")
        return transcription

    async def cleanup(self) -> None:
        """Cleanup resources."""
        if self.transcription_service:
            await self.transcription_service.cleanup()
        logger.info("VoiceProcessor cleanup completed")
