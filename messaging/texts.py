"""User-facing message templates."""

from typing import Optional

from quota.admission import split_minutes
from quota.errors import ErrorKind

DECODE_NOTICE = "Decoding will take from 15% to 30% of file duration if it is not too short"
DECODE_FAILED = "There was an error decoding the file"
TRY_AGAIN_LATER = "There is an error occurred, please try again later"

AUDIO_HEADER = "Here is the script of the audio:"
VOICE_HEADER = "Here is the script of the voice message:"

DURATION_EXCEEDED = (
    "The audio file is too long. Only {minutes} minutes allowed for users without premium"
)
QUOTA_EXHAUSTED = (
    "Too long audio, you dont have enough free time, "
    "remaining time: {minutes:02d} minutes {seconds:02d} seconds"
)
PERIOD_CAP_EXCEEDED = (
    "Dear {name}, You have exceeded maximum numbers of free decoding of audio,"
    "to get premium - type /premium"
)
REMAINING_TIME = "Remaining free time: {minutes:02d} minutes {seconds:02d} seconds"

START = (
    "Hi {name}! Send me an audio file or a voice message and I will reply with its text.\n"
    "Type /usage to see your remaining time and /premium to learn about premium."
)
HELP = (
    "Send an audio file or a voice message to get its transcript.\n"
    "Free users can decode up to {free_minutes} minutes of audio, "
    "premium users up to {premium_minutes} minutes.\n"
    "/usage - remaining time\n"
    "/premium - premium access"
)
PREMIUM = (
    "Premium raises your limit to {premium_minutes} minutes of audio. "
    "Contact the bot owner to get premium access."
)


def format_remaining(minutes: int, seconds: int) -> str:
    return REMAINING_TIME.format(minutes=minutes, seconds=seconds)


def denial_message(
    reason: Optional[ErrorKind],
    free_cap: int,
    first_name: Optional[str] = None,
    remaining_seconds: Optional[int] = None,
) -> str:
    """Text sent to the user when admission is denied."""
    if reason == ErrorKind.DURATION_EXCEEDED:
        return DURATION_EXCEEDED.format(minutes=free_cap // 60)
    if reason == ErrorKind.QUOTA_EXHAUSTED:
        minutes, seconds = split_minutes(remaining_seconds or 0)
        return QUOTA_EXHAUSTED.format(minutes=minutes, seconds=seconds)
    if reason == ErrorKind.PERIOD_CAP_EXCEEDED:
        return PERIOD_CAP_EXCEEDED.format(name=first_name or "user")
    return TRY_AGAIN_LATER
