"""Tests for VoiceProcessor."""

import pytest
from unittest.mock import AsyncMock, patch, MagicMock
from messaging.voice_processor import VoiceProcessor
from messaging.models import IncomingMessage, AUDIO, VOICE
from quota.errors import DecodeFailedError, ErrorKind


@pytest.fixture
def mock_bot():
    """Mock Telegram bot with async methods."""
    bot = MagicMock()
    bot.get_file = AsyncMock()
    return bot


@pytest.fixture
def mock_services():
    """Mock transcription and audio services."""
    with patch('messaging.voice_processor.TelegramAudioDownloader') as mock_downloader_class, \
         patch('messaging.voice_processor.TranscriptionService') as mock_transcription_class:

        mock_transcription_instance = MagicMock()
        mock_transcription_instance.transcribe = AsyncMock(return_value="Texto transcrito")
        mock_transcription_instance.cleanup = AsyncMock()
        mock_transcription_class.return_value = mock_transcription_instance

        mock_downloader_instance = MagicMock()
        mock_downloader_instance.download_and_transcribe = AsyncMock(return_value="Texto transcrito")
        mock_downloader_class.return_value = mock_downloader_instance

        yield {
            'transcription': mock_transcription_class,
            'downloader': mock_downloader_class,
            'transcription_instance': mock_transcription_instance,
            'downloader_instance': mock_downloader_instance
        }


def make_incoming(kind=VOICE, file_id="voice_123"):
    return IncomingMessage(
        text="",
        audio_file_id=file_id,
        audio_duration=12,
        audio_kind=kind,
        chat_id="123",
        user_id="456",
        message_id="789",
        platform="telegram",
        raw_event=None
    )


@pytest.mark.asyncio
async def test_decode_voice(mock_bot, mock_services):
    """Test decoding a voice message."""
    processor = VoiceProcessor(get_bot=lambda: mock_bot)

    text = await processor.decode(make_incoming())

    assert text == "Texto transcrito"
    download = mock_services['downloader_instance'].download_and_transcribe
    download.assert_called_once()
    assert download.call_args.kwargs['file_id'] == "voice_123"
    assert download.call_args.kwargs['is_voice'] is True


@pytest.mark.asyncio
async def test_decode_audio_file_skips_conversion(mock_bot, mock_services):
    processor = VoiceProcessor(get_bot=lambda: mock_bot)

    await processor.decode(make_incoming(kind=AUDIO, file_id="audio_1"))

    download = mock_services['downloader_instance'].download_and_transcribe
    assert download.call_args.kwargs['is_voice'] is False


@pytest.mark.asyncio
async def test_decode_without_audio_fails():
    processor = VoiceProcessor()
    incoming = make_incoming(file_id=None)

    with pytest.raises(DecodeFailedError):
        await processor.decode(incoming)


@pytest.mark.asyncio
async def test_decode_failure_is_wrapped(mock_bot, mock_services):
    """Backend errors become DecodeFailedError."""
    processor = VoiceProcessor(get_bot=lambda: mock_bot)
    mock_services['downloader_instance'].download_and_transcribe.side_effect = RuntimeError(
        "Transcription failed"
    )

    with pytest.raises(DecodeFailedError) as exc_info:
        await processor.decode(make_incoming())

    assert exc_info.value.kind == ErrorKind.DECODE_FAILED
    assert "Transcription failed" in str(exc_info.value)


@pytest.mark.asyncio
async def test_decode_without_bot_fails(mock_services):
    processor = VoiceProcessor(get_bot=lambda: None)

    with pytest.raises(DecodeFailedError, match="downloader not initialized"):
        await processor.decode(make_incoming())


@pytest.mark.asyncio
async def test_initialize_once(mock_bot, mock_services):
    processor = VoiceProcessor(get_bot=lambda: mock_bot)

    await processor.initialize()
    await processor.initialize()

    mock_services['transcription'].assert_called_once()
    mock_services['downloader'].assert_called_once_with(bot=mock_bot)


@pytest.mark.asyncio
async def test_cleanup(mock_services):
    """Test cleanup of resources."""
    processor = VoiceProcessor()
    await processor.initialize()
    await processor.cleanup()
    mock_services['transcription_instance'].cleanup.assert_called_once()
