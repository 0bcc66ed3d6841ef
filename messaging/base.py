"""Abstract interface every messaging platform adapter implements."""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

from .models import IncomingMessage


class MessagingPlatform(ABC):
    """
    Transport used by the transcription handler.

    Adapters receive platform events, convert them to IncomingMessage and
    pass them to the registered handler.
    """

    name: str = "base"

    @abstractmethod
    async def start(self) -> None:
        """Connect and begin receiving messages."""

    @abstractmethod
    async def stop(self) -> None:
        """Disconnect."""

    @abstractmethod
    async def send_message(
        self,
        chat_id: str,
        text: str,
        reply_to: Optional[str] = None,
        parse_mode: Optional[str] = None,
    ) -> str:
        """Send a text message and return its platform message id."""

    @abstractmethod
    async def is_premium(self, user_id: str, chat_id: str) -> bool:
        """Whether the user belongs to the premium tier."""

    @abstractmethod
    def on_message(
        self,
        handler: Callable[[IncomingMessage], Awaitable[None]],
    ) -> None:
        """Register the callback invoked for each incoming message."""

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Check if connected."""
