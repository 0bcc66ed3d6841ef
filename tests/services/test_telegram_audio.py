"""Tests for TelegramAudioDownloader."""

import pytest
from unittest.mock import Mock, AsyncMock, patch, MagicMock
from services.telegram_audio import TelegramAudioDownloader


@pytest.fixture
def mock_bot():
    """Mock Telegram Bot"""
    bot = Mock()
    bot.get_file = AsyncMock()
    return bot


@pytest.fixture
def downloader(mock_bot):
    """Create TelegramAudioDownloader instance"""
    return TelegramAudioDownloader(bot=mock_bot)


@pytest.mark.asyncio
async def test_download_voice_message(downloader, mock_bot, tmp_path):
    """Test successful download and conversion of voice message"""
    # Arrange
    mock_file = Mock()
    mock_file.file_path = "voice/file_123.oga"
    mock_file.download_to_drive = AsyncMock()
    mock_bot.get_file.return_value = mock_file

    mock_audio = MagicMock()

    with patch('services.telegram_audio.AudioSegment.from_ogg', return_value=mock_audio):
        # Act
        result = await downloader.download_voice(
            file_id="file_unique_id_123",
            output_dir=str(tmp_path)
        )

    # Assert
    assert result == str(tmp_path / "file_unique_id_123.mp3")
    mock_bot.get_file.assert_called_once_with("file_unique_id_123")
    mock_audio.export.assert_called_once()


@pytest.mark.asyncio
async def test_download_audio_keeps_extension(downloader, mock_bot, tmp_path):
    mock_file = Mock()
    mock_file.file_path = "music/file_9.m4a"
    mock_file.download_to_drive = AsyncMock()
    mock_bot.get_file.return_value = mock_file

    result = await downloader.download_audio(file_id="file_9", output_dir=str(tmp_path))

    assert result == str(tmp_path / "file_9.m4a")
    mock_file.download_to_drive.assert_called_once_with(tmp_path / "file_9.m4a")


@pytest.mark.asyncio
async def test_download_and_transcribe_voice(downloader, tmp_path):
    """Test download and transcribe integration"""
    mock_transcription_service = Mock()
    mock_transcription_service.transcribe = AsyncMock(return_value="Texto transcrito")
    audio_path = tmp_path / "file_123.mp3"
    audio_path.write_bytes(b"fake")

    with patch.object(downloader, 'download_voice', AsyncMock(return_value=str(audio_path))), \
         patch('services.telegram_audio.settings') as mock_settings:
        mock_settings.cleanup_audio_files = True

        result = await downloader.download_and_transcribe(
            file_id="file_123",
            transcription_service=mock_transcription_service,
            output_dir=str(tmp_path),
            language="es"
        )

    assert result == "Texto transcrito"
    mock_transcription_service.transcribe.assert_called_once_with(str(audio_path), language="es")
    assert not audio_path.exists()


@pytest.mark.asyncio
async def test_download_and_transcribe_audio_cleans_up_on_error(downloader, tmp_path):
    mock_transcription_service = Mock()
    mock_transcription_service.transcribe = AsyncMock(side_effect=RuntimeError("bad audio"))
    audio_path = tmp_path / "file_1.mp3"
    audio_path.write_bytes(b"fake")

    with patch.object(downloader, 'download_audio', AsyncMock(return_value=str(audio_path))), \
         patch('services.telegram_audio.settings') as mock_settings:
        mock_settings.cleanup_audio_files = True

        with pytest.raises(RuntimeError, match="bad audio"):
            await downloader.download_and_transcribe(
                file_id="file_1",
                transcription_service=mock_transcription_service,
                is_voice=False,
            )

    assert not audio_path.exists()
