"""Platform-agnostic message models."""

from dataclasses import dataclass, field
from typing import Optional, Any
from datetime import datetime, timezone

AUDIO = "audio"
VOICE = "voice"


@dataclass
class IncomingMessage:
    """
    Platform-agnostic incoming message.

    Adapters convert platform-specific events to this format.
    """

    text: str
    chat_id: str
    user_id: str
    message_id: str
    platform: str  # "telegram", "discord", "slack", etc.

    # Optional fields
    first_name: Optional[str] = None
    username: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    # Audio attachment (audio file or voice note)
    audio_file_id: Optional[str] = None
    audio_duration: int = 0  # seconds, as reported by the platform
    audio_kind: Optional[str] = None  # AUDIO or VOICE

    # Platform-specific raw event for edge cases
    raw_event: Any = None

    def has_audio(self) -> bool:
        """Check if this message carries an audio attachment."""
        return self.audio_file_id is not None

    def is_voice(self) -> bool:
        return self.audio_kind == VOICE

    def command(self) -> Optional[str]:
        """
        Bot command in the text, without arguments or bot mention.

        Examples:
            "/usage" -> "/usage", "/start@my_bot hi" -> "/start", "hello" -> None
        """
        if not self.text or not self.text.startswith("/"):
            return None
        return self.text.split()[0].split("@")[0].lower()
