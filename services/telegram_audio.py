"""
Telegram audio downloader service.

Handles downloading voice messages and audio files from Telegram,
converting voice notes (OGG/Opus) to MP3 for Whisper.
"""

import os
import tempfile
import logging
from pathlib import Path
from typing import Optional
from telegram import Bot, File
from pydub import AudioSegment

from config import settings

logger = logging.getLogger(__name__)


class TelegramAudioDownloader:
    """
    Service for downloading audio files from Telegram.

    Voice notes arrive as OGG and are converted to MP3; audio files are
    kept in their original container.
    """

    def __init__(self, bot: Bot):
        """
        Initialize downloader.

        Args:
            bot: Telegram Bot instance
        """
        self.bot = bot
        logger.info("TelegramAudioDownloader initialized")

    async def download_voice(
        self,
        file_id: str,
        output_dir: Optional[str] = None,
        filename: Optional[str] = None,
    ) -> str:
        """
        Download voice message from Telegram.

        Args:
            file_id: Telegram file_id from voice message
            output_dir: Directory to save the file (default: settings.audio_download_dir)
            filename: Optional custom filename

        Returns:
            Path to downloaded (and converted) audio file
        """
        output_dir = output_dir or settings.audio_download_dir
        os.makedirs(output_dir, exist_ok=True)

        if filename is None:
            filename = f"{file_id}.ogg"

        output_path = Path(output_dir) / filename
        logger.info(f"Downloading voice message: {file_id}")

        # Get file info from Telegram
        file: File = await self.bot.get_file(file_id)

        # Download to temporary file first
        with tempfile.NamedTemporaryFile(suffix=".ogg", delete=False) as temp_file:
            temp_path = temp_file.name

        try:
            await file.download_to_drive(temp_path)
            logger.info(f"Downloaded to temp file: {temp_path}")

            audio = AudioSegment.from_ogg(temp_path)
            mp3_path = output_path.with_suffix(".mp3")
            audio.export(mp3_path, format="mp3")
            logger.info(f"Converted to MP3: {mp3_path}")

            return str(mp3_path)

        finally:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
                logger.debug(f"Cleaned up temp file: {temp_path}")

    async def download_audio(
        self,
        file_id: str,
        output_dir: Optional[str] = None,
    ) -> str:
        """
        Download an audio file from Telegram without conversion.

        Returns:
            Path to the downloaded file, keeping Telegram's file extension
        """
        output_dir = output_dir or settings.audio_download_dir
        os.makedirs(output_dir, exist_ok=True)

        logger.info(f"Downloading audio file: {file_id}")
        file: File = await self.bot.get_file(file_id)

        suffix = Path(file.file_path or "").suffix or ".mp3"
        output_path = Path(output_dir) / f"{file_id}{suffix}"
        await file.download_to_drive(output_path)
        logger.info(f"Downloaded audio to: {output_path}")

        return str(output_path)

    async def download_and_transcribe(
        self,
        file_id: str,
        transcription_service,
        output_dir: Optional[str] = None,
        language: str = "auto",
        is_voice: bool = True,
    ) -> str:
        """
        Download voice or audio and transcribe in one step.

        Args:
            file_id: Telegram file_id
            transcription_service: TranscriptionService instance
            output_dir: Directory for downloads
            language: Language for transcription
            is_voice: Voice notes are converted, audio files are not

        Returns:
            Transcribed text
        """
        logger.info(f"Downloading and transcribing: {file_id}")

        if is_voice:
            audio_path = await self.download_voice(file_id, output_dir)
        else:
            audio_path = await self.download_audio(file_id, output_dir)

        try:
            text = await transcription_service.transcribe(audio_path, language=language)
            logger.info(f"Transcription completed: {len(text)} chars")
            return text
        finally:
            if settings.cleanup_audio_files and os.path.exists(audio_path):
                os.unlink(audio_path)
                logger.debug(f"Cleaned up audio file: {audio_path}")
