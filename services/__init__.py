"""
Service layer for audio transcription.

This package contains services for:
- Audio transcription using Faster Whisper
- Telegram audio and voice downloads
"""

from .transcription import TranscriptionService
from .telegram_audio import TelegramAudioDownloader

__all__ = ['TranscriptionService', 'TelegramAudioDownloader']
