"""Tests for TranscriptionService with Whisper integration."""

import pytest
from unittest.mock import patch, MagicMock
from services.transcription import TranscriptionService, resolve_device


@pytest.fixture
def mock_whisper():
    """Mock Whisper module"""
    with patch('services.transcription.WhisperModel') as mock_whisper_mod:
        mock_model_instance = MagicMock()
        mock_model_instance.transcribe.return_value = (
            [MagicMock(text=' Hola mundo,'), MagicMock(text=' esta es una prueba de transcripción')],
            MagicMock(language='es')
        )
        mock_whisper_mod.return_value = mock_model_instance
        yield mock_whisper_mod


@pytest.fixture
def transcription_service(mock_whisper):
    """Create TranscriptionService instance"""
    return TranscriptionService(model="base", device="cpu")


@pytest.mark.asyncio
async def test_transcribe_audio_file(transcription_service, mock_whisper, tmp_path):
    """Test successful transcription of audio file"""
    # Arrange
    test_audio = tmp_path / "test.mp3"
    test_audio.write_bytes(b"fake audio data")

    # Act
    result = await transcription_service.transcribe(str(test_audio))

    # Assert
    assert result == "Hola mundo, esta es una prueba de transcripción"
    mock_whisper.assert_called_once_with("base", device="cpu", compute_type="int8")
    options = mock_whisper.return_value.transcribe.call_args.kwargs
    assert options["language"] is None


@pytest.mark.asyncio
async def test_transcribe_with_language(transcription_service, mock_whisper, tmp_path):
    """Test transcription with language specified"""
    test_audio = tmp_path / "test.ogg"
    test_audio.write_bytes(b"fake audio data")
    mock_whisper.return_value.transcribe.return_value = (
        [MagicMock(text='Hello world, this is a test transcription')],
        MagicMock(language='en')
    )

    result = await transcription_service.transcribe(str(test_audio), language="en")

    assert result == "Hello world, this is a test transcription"
    assert mock_whisper.return_value.transcribe.call_args.kwargs["language"] == "en"


@pytest.mark.asyncio
async def test_transcribe_silence_returns_empty(transcription_service, mock_whisper, tmp_path):
    test_audio = tmp_path / "silence.mp3"
    test_audio.write_bytes(b"fake audio data")
    mock_whisper.return_value.transcribe.return_value = ([], MagicMock(language='en'))

    assert await transcription_service.transcribe(str(test_audio)) == ""


@pytest.mark.asyncio
async def test_transcribe_nonexistent_file(transcription_service):
    """Test error handling for non-existent file"""
    with pytest.raises(FileNotFoundError):
        await transcription_service.transcribe("/nonexistent/file.mp3")


@pytest.mark.asyncio
async def test_cleanup_drops_model(transcription_service, tmp_path):
    test_audio = tmp_path / "test.mp3"
    test_audio.write_bytes(b"fake audio data")
    await transcription_service.transcribe(str(test_audio))

    await transcription_service.cleanup()

    assert transcription_service._model is None


def test_resolve_device():
    with patch('services.transcription.ctranslate2.get_cuda_device_count', return_value=1):
        assert resolve_device("auto") == "cuda"
    with patch('services.transcription.ctranslate2.get_cuda_device_count', return_value=0):
        assert resolve_device("auto") == "cpu"
    assert resolve_device("cpu") == "cpu"
