"""
Admission control for audio transcription requests.

Decides, from a requested duration, the user's tier and the seconds already
consumed, whether the request may go to the transcription backend. Pure
functions only; reading and writing counters is the ledger's job.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from .errors import ErrorKind
from .tiers import Tier, TierLimits

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdmissionDecision:
    """
    Outcome of an admission check.

    Attributes:
        granted: Whether the request may be processed.
        reason: Denial kind when not granted.
        remaining_seconds: Seconds left in the period, reported on QUOTA_EXHAUSTED.
        consumed_seconds: Consumption the decision was based on.
        reserved: True when the requested seconds were already recorded
            (strict mode) and must be released if decoding fails.
    """

    granted: bool
    reason: Optional[ErrorKind] = None
    remaining_seconds: Optional[int] = None
    consumed_seconds: int = 0
    reserved: bool = False

    @classmethod
    def grant(cls, consumed_seconds: int = 0, reserved: bool = False) -> "AdmissionDecision":
        return cls(granted=True, consumed_seconds=consumed_seconds, reserved=reserved)

    @classmethod
    def deny(
        cls,
        reason: ErrorKind,
        remaining_seconds: Optional[int] = None,
        consumed_seconds: int = 0,
    ) -> "AdmissionDecision":
        return cls(
            granted=False,
            reason=reason,
            remaining_seconds=remaining_seconds,
            consumed_seconds=consumed_seconds,
        )


def check_admission(
    requested_seconds: int,
    tier: Tier,
    consumed_seconds: int,
    limits: TierLimits,
) -> AdmissionDecision:
    """
    Decide whether ``requested_seconds`` of audio may be transcribed.

    Premium requests are always granted; the premium cap only shapes the
    remaining time shown afterwards. Free requests are denied when a single
    request is longer than the free cap, or when it would push cumulative
    usage over the cap.

    Args:
        requested_seconds: Duration of the audio (>= 0).
        tier: User tier.
        consumed_seconds: Seconds already used this period (ignored for premium).
        limits: Tier caps.

    Returns:
        AdmissionDecision
    """
    if requested_seconds < 0:
        raise ValueError(f"requested_seconds must be >= 0, got {requested_seconds}")

    if tier == Tier.PREMIUM:
        return AdmissionDecision.grant(consumed_seconds)

    cap = limits.free_cap
    if requested_seconds > cap:
        return AdmissionDecision.deny(
            ErrorKind.DURATION_EXCEEDED, consumed_seconds=consumed_seconds
        )

    if consumed_seconds + requested_seconds > cap:
        return AdmissionDecision.deny(
            ErrorKind.QUOTA_EXHAUSTED,
            remaining_seconds=cap - consumed_seconds,
            consumed_seconds=consumed_seconds,
        )

    return AdmissionDecision.grant(consumed_seconds)


def split_minutes(seconds: int) -> Tuple[int, int]:
    """Split seconds into whole minutes and leftover seconds, clamped at zero."""
    if seconds < 0:
        return 0, 0
    return divmod(seconds, 60)


def remaining_time(cap: int, consumed_seconds: int) -> Tuple[int, int]:
    """
    Remaining allowance as (minutes, seconds).

    Concurrent requests can push consumption past the cap; the result is then
    clamped to (0, 0).
    """
    remaining = cap - consumed_seconds
    if remaining < 0:
        logger.warning(
            f"Consumption {consumed_seconds}s exceeds cap {cap}s by {-remaining}s"
        )
    return split_minutes(remaining)
