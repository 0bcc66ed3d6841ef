"""
Quota service: admission checks and usage recording against a ledger.

The ledger is injected so tests and deployments choose the backend. Reads
that fail are handled conservatively (bootstrap the record rather than block
the user) and failed writes are logged and swallowed: a delivered transcript
stays delivered even when accounting fails.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .admission import AdmissionDecision, check_admission
from .errors import ErrorKind, QuotaError
from .ledger import QuotaLedger
from .tiers import Tier, TierLimits

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UsageSnapshot:
    """Current usage of one tier for one user."""

    tier: Tier
    consumed_seconds: int
    cap_seconds: int

    @property
    def remaining_seconds(self) -> int:
        return max(self.cap_seconds - self.consumed_seconds, 0)


class QuotaService:
    """
    Binds the admission policy to a quota ledger.

    With ``strict=True`` free-tier seconds are reserved atomically during
    admission, closing the window in which two concurrent requests both pass
    the pre-check. Otherwise usage is recorded after delivery and that window
    is accepted.
    """

    def __init__(
        self,
        ledger: QuotaLedger,
        limits: Optional[TierLimits] = None,
        strict: bool = False,
    ):
        self.ledger = ledger
        self.limits = limits or TierLimits()
        self.strict = strict

    async def get_consumed(self, user_id: str, tier: Tier) -> int:
        """
        Read consumption, creating the record for first-seen users.

        Raises:
            QuotaError: PERIOD_CAP_EXCEEDED for blocked users, LEDGER_UNAVAILABLE
                when neither reading nor initializing the record works.
        """
        try:
            return await self.ledger.get_consumed(user_id, tier)
        except QuotaError as e:
            if e.kind == ErrorKind.PERIOD_CAP_EXCEEDED:
                raise
            if e.kind == ErrorKind.LEDGER_UNAVAILABLE:
                logger.warning(f"Usage read failed for user {user_id}, initializing: {e}")
            else:
                logger.info(f"First {tier.value} request from user {user_id}")

        await self.ledger.initialize_user(user_id, tier)
        return 0

    async def admit(
        self, user_id: str, tier: Tier, requested_seconds: int
    ) -> AdmissionDecision:
        """
        Decide whether ``requested_seconds`` may be transcribed for the user.

        Never raises for ledger problems. Premium users are always admitted;
        for free users a block or an unusable ledger comes back as a denial.
        """
        try:
            consumed = await self.get_consumed(user_id, tier)
        except QuotaError as e:
            if tier == Tier.PREMIUM:
                # Premium admission does not depend on the ledger
                logger.warning(f"Usage read failed for premium user {user_id}: {e.kind.value}")
                return AdmissionDecision.grant(0)
            logger.warning(f"Admission denied for user {user_id}: {e.kind.value}")
            return AdmissionDecision.deny(e.kind)

        decision = check_admission(requested_seconds, tier, consumed, self.limits)
        if not decision.granted or not self.strict or tier == Tier.PREMIUM:
            return decision

        try:
            total = await self.ledger.try_consume(
                user_id, tier, requested_seconds, self.limits.free_cap
            )
        except QuotaError as e:
            logger.warning(f"Reservation failed for user {user_id}: {e}")
            return AdmissionDecision.deny(ErrorKind.LEDGER_UNAVAILABLE)

        if total is None:
            # A concurrent request consumed the allowance after our read
            try:
                consumed = await self.ledger.get_consumed(user_id, tier)
            except QuotaError:
                logger.debug(f"Could not re-read usage for user {user_id}")
            return AdmissionDecision.deny(
                ErrorKind.QUOTA_EXHAUSTED,
                remaining_seconds=max(self.limits.free_cap - consumed, 0),
                consumed_seconds=consumed,
            )

        return AdmissionDecision.grant(total - requested_seconds, reserved=True)

    async def record(
        self,
        user_id: str,
        tier: Tier,
        duration_seconds: int,
        decision: AdmissionDecision,
    ) -> int:
        """
        Record consumption after a successful decode.

        Returns:
            The consumed total after this request. When the ledger write
            fails the total is estimated from the admission-time reading.
        """
        if decision.reserved:
            return decision.consumed_seconds + duration_seconds

        try:
            return await self.ledger.increment_consumed(user_id, tier, duration_seconds)
        except QuotaError as e:
            logger.error(
                f"Failed to record {duration_seconds}s for user {user_id} ({tier.value}): {e}"
            )
            return decision.consumed_seconds + duration_seconds

    async def release(
        self,
        user_id: str,
        tier: Tier,
        duration_seconds: int,
        decision: AdmissionDecision,
    ) -> None:
        """Return a strict-mode reservation after a failed decode."""
        if not decision.reserved:
            return

        try:
            await self.ledger.increment_consumed(user_id, tier, -duration_seconds)
        except QuotaError as e:
            logger.error(
                f"Failed to release {duration_seconds}s reservation for user {user_id}: {e}"
            )

    async def usage(self, user_id: str, tier: Tier) -> UsageSnapshot:
        """Current usage for the user on ``tier``."""
        consumed = await self.get_consumed(user_id, tier)
        return UsageSnapshot(
            tier=tier,
            consumed_seconds=consumed,
            cap_seconds=self.limits.cap_for(tier),
        )
