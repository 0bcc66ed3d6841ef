"""
Transcription Message Handler

Platform-agnostic handling of audio and voice messages: resolve the user's
tier, check the quota, decode, deliver the transcript in chunks and record
the consumed seconds.
"""

import asyncio
import logging
from typing import Optional, Protocol

from .base import MessagingPlatform
from .models import IncomingMessage
from .pagination import paginate_text
from . import texts
from quota.admission import AdmissionDecision, remaining_time
from quota.errors import DecodeFailedError, ErrorKind, QuotaError
from quota.service import QuotaService
from quota.tiers import Tier

logger = logging.getLogger(__name__)

DEFAULT_MAX_MESSAGE_LENGTH = 4000


class AudioDecoder(Protocol):
    async def decode(self, incoming: IncomingMessage) -> str: ...


class TranscriptionHandler:
    """
    Platform-agnostic handler for transcription requests.

    Each incoming audio event moves through:
        received -> tier resolved -> admission checked
        -> (denied: rejected)
        -> (granted: transcribing -> paginated -> delivered -> recorded)

    A denied request never reaches the decoder or the ledger. A failed decode
    consumes no quota. A failed recording is logged and does not undo the
    delivery.
    """

    def __init__(
        self,
        platform: MessagingPlatform,
        quota: QuotaService,
        decoder: AudioDecoder,
        max_message_length: int = DEFAULT_MAX_MESSAGE_LENGTH,
        decode_timeout: Optional[float] = None,
    ):
        self.platform = platform
        self.quota = quota
        self.decoder = decoder
        self.max_message_length = max_message_length
        self.decode_timeout = decode_timeout

    async def handle_message(self, incoming: IncomingMessage) -> None:
        """
        Main entry point for handling an incoming message.

        Commands are answered directly; audio goes through the quota flow;
        anything else is ignored.
        """
        command = incoming.command()
        if command == "/start":
            await self._handle_start_command(incoming)
            return

        if command == "/help":
            await self._handle_help_command(incoming)
            return

        if command == "/premium":
            await self._send(incoming, self._premium_text())
            return

        if command == "/usage":
            await self._handle_usage_command(incoming)
            return

        if incoming.has_audio():
            await self.handle_audio(incoming)

    async def _resolve_tier(self, incoming: IncomingMessage) -> Tier:
        try:
            premium = await self.platform.is_premium(incoming.user_id, incoming.chat_id)
        except Exception as e:
            logger.warning(f"Premium lookup failed for user {incoming.user_id}: {e}")
            premium = False
        return Tier.PREMIUM if premium else Tier.FREE

    async def handle_audio(self, incoming: IncomingMessage) -> None:
        """Run one audio or voice message through admission, decode and delivery."""
        user_id = incoming.user_id
        duration = max(int(incoming.audio_duration or 0), 0)

        tier = await self._resolve_tier(incoming)
        logger.info(f"Audio from user {user_id}: {duration}s, tier={tier.value}")

        decision = await self.quota.admit(user_id, tier, duration)
        if not decision.granted:
            logger.info(f"Rejected audio from user {user_id}: {decision.reason.value}")
            await self._send(
                incoming,
                texts.denial_message(
                    decision.reason,
                    self.quota.limits.free_cap,
                    first_name=incoming.first_name,
                    remaining_seconds=decision.remaining_seconds,
                ),
            )
            return

        await self._send(incoming, texts.DECODE_NOTICE)

        try:
            transcript = await self._decode(incoming)
        except DecodeFailedError as e:
            logger.error(f"Decode failed for user {user_id}: {e}", exc_info=True)
            await self.quota.release(user_id, tier, duration, decision)
            await self._send(incoming, texts.DECODE_FAILED)
            return

        await self._deliver(incoming, transcript)
        await self._report_usage(incoming, tier, duration, decision)

    async def _decode(self, incoming: IncomingMessage) -> str:
        try:
            if self.decode_timeout:
                return await asyncio.wait_for(
                    self.decoder.decode(incoming), timeout=self.decode_timeout
                )
            return await self.decoder.decode(incoming)
        except asyncio.TimeoutError as e:
            raise DecodeFailedError(
                f"Decoding {incoming.audio_file_id} timed out after {self.decode_timeout}s"
            ) from e

    async def _deliver(self, incoming: IncomingMessage, transcript: str) -> None:
        chunks = paginate_text(transcript, self.max_message_length)
        header = texts.VOICE_HEADER if incoming.is_voice() else texts.AUDIO_HEADER

        await self._send(incoming, header)
        for chunk in chunks:
            await self._send(incoming, chunk)

        logger.info(
            f"Delivered transcript to chat {incoming.chat_id}: "
            f"{len(transcript)} chars in {len(chunks)} message(s)"
        )

    async def _report_usage(
        self,
        incoming: IncomingMessage,
        tier: Tier,
        duration: int,
        decision: AdmissionDecision,
    ) -> None:
        consumed = await self.quota.record(incoming.user_id, tier, duration, decision)
        minutes, seconds = remaining_time(self.quota.limits.cap_for(tier), consumed)
        await self._send(incoming, texts.format_remaining(minutes, seconds))

    async def _send(self, incoming: IncomingMessage, text: str) -> None:
        await self.platform.send_message(incoming.chat_id, text)

    def _premium_text(self) -> str:
        return texts.PREMIUM.format(premium_minutes=self.quota.limits.premium_cap // 60)

    async def _handle_start_command(self, incoming: IncomingMessage) -> None:
        await self._send(incoming, texts.START.format(name=incoming.first_name or "there"))

    async def _handle_help_command(self, incoming: IncomingMessage) -> None:
        limits = self.quota.limits
        await self._send(
            incoming,
            texts.HELP.format(
                free_minutes=limits.free_cap // 60,
                premium_minutes=limits.premium_cap // 60,
            ),
        )

    async def _handle_usage_command(self, incoming: IncomingMessage) -> None:
        """Handle /usage command."""
        tier = await self._resolve_tier(incoming)
        try:
            usage = await self.quota.usage(incoming.user_id, tier)
        except QuotaError as e:
            reason = e.kind if e.kind == ErrorKind.PERIOD_CAP_EXCEEDED else None
            await self._send(
                incoming,
                texts.denial_message(
                    reason, self.quota.limits.free_cap, first_name=incoming.first_name
                ),
            )
            return

        minutes, seconds = remaining_time(usage.cap_seconds, usage.consumed_seconds)
        await self._send(incoming, texts.format_remaining(minutes, seconds))
