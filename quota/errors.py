"""Error taxonomy for quota accounting and decoding."""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Tag identifying what went wrong. Control flow switches on this."""

    DURATION_EXCEEDED = "duration_exceeded"
    QUOTA_EXHAUSTED = "quota_exhausted"
    USER_NOT_FOUND = "user_not_found"
    PERIOD_CAP_EXCEEDED = "period_cap_exceeded"
    LEDGER_UNAVAILABLE = "ledger_unavailable"
    DECODE_FAILED = "decode_failed"


class BotError(Exception):
    """Base exception for bot errors."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind,
        user_message: Optional[str] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.user_message = user_message or message


class QuotaError(BotError):
    """Ledger or admission failure."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind,
        user_message: Optional[str] = None,
        remaining_seconds: Optional[int] = None,
    ):
        super().__init__(message, kind, user_message)
        self.remaining_seconds = remaining_seconds


class DecodeFailedError(BotError):
    """Transcription backend failure (download, conversion or speech-to-text)."""

    def __init__(self, message: str, user_message: Optional[str] = None):
        super().__init__(message, ErrorKind.DECODE_FAILED, user_message)
