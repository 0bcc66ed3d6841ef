"""
Usage-quota accounting for audio transcription.

This package contains:
- Tier caps and accounting periods
- The pure admission policy
- Ledger backends (JSON file, Redis)
- QuotaService, which ties admission to a ledger
"""

from .admission import AdmissionDecision, check_admission, remaining_time
from .errors import BotError, DecodeFailedError, ErrorKind, QuotaError
from .ledger import JsonQuotaLedger, QuotaLedger, RedisQuotaLedger
from .service import QuotaService, UsageSnapshot
from .tiers import Tier, TierLimits

__all__ = [
    "AdmissionDecision",
    "check_admission",
    "remaining_time",
    "BotError",
    "DecodeFailedError",
    "ErrorKind",
    "QuotaError",
    "JsonQuotaLedger",
    "QuotaLedger",
    "RedisQuotaLedger",
    "QuotaService",
    "UsageSnapshot",
    "Tier",
    "TierLimits",
]
