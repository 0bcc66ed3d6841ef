"""Tests for messaging models."""

import pytest
from messaging.models import IncomingMessage, AUDIO, VOICE


def test_incoming_message_with_voice():
    """Test IncomingMessage with a voice attachment."""
    # Arrange & Act
    message = IncomingMessage(
        text="",
        audio_file_id="voice_123",
        audio_duration=42,
        audio_kind=VOICE,
        chat_id="123",
        user_id="456",
        message_id="789",
        platform="telegram",
        raw_event=None,
    )

    # Assert
    assert message.has_audio() is True
    assert message.is_voice() is True
    assert message.audio_duration == 42


def test_incoming_message_without_audio():
    """Test IncomingMessage without audio (defaults)."""
    message = IncomingMessage(
        text="Hola",
        chat_id="123",
        user_id="456",
        message_id="789",
        platform="telegram",
    )

    assert message.has_audio() is False
    assert message.audio_duration == 0
    assert message.command() is None


def test_audio_file_is_not_voice():
    message = IncomingMessage(
        text="",
        audio_file_id="audio_1",
        audio_kind=AUDIO,
        chat_id="123",
        user_id="456",
        message_id="789",
        platform="telegram",
    )

    assert message.has_audio() is True
    assert message.is_voice() is False


@pytest.mark.parametrize(
    "text,expected",
    [
        ("/usage", "/usage"),
        ("/start@transcript_bot hello", "/start"),
        ("/HELP", "/help"),
        ("not a command", None),
        ("", None),
    ],
)
def test_command_parsing(text, expected):
    message = IncomingMessage(
        text=text, chat_id="1", user_id="2", message_id="3", platform="telegram"
    )

    assert message.command() == expected
