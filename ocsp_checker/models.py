from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Optional
from datetime import datetime, timezone


class CertStatus(Enum):
    GOOD = "Good"
    UNKNOWN = "Unknown"
    REVOKED = "Revoked"


class RevocationReason(IntEnum):
    # RFC 5280 CRLReason; 7 is reserved and intentionally absent
    Unspecified = 0
    KeyCompromise = 1
    CACompromise = 2
    AffiliationChanged = 3
    Superseded = 4
    CessationOfOperation = 5
    CertificateHold = 6
    RemoveFromCRL = 8
    PrivilegeWithdrawn = 9
    AACompromise = 10


def describe_reason(code: Optional[int]) -> str:
    """Return the display label for a numeric revocation reason."""
    if code is None:
        return "not supplied"
    try:
        return RevocationReason(code).name
    except ValueError:
        return f"unexpected value: {code}"


@dataclass
class Verdict:
    status: CertStatus
    revocation_reason: Optional[int] = None
    revocation_time: Optional[datetime] = None
    this_update: Optional[datetime] = None
    next_update: Optional[datetime] = None
    produced_at: Optional[datetime] = None

    @property
    def reason_label(self) -> str:
        return describe_reason(self.revocation_reason)

    @property
    def is_revoked(self) -> bool:
        return self.status is CertStatus.REVOKED


@dataclass
class ScenarioResult:
    scenario: str
    target: str
    verdict: Optional[Verdict] = None
    error: Optional[str] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    ended_at: Optional[datetime] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.verdict is not None

    @property
    def duration_ms(self) -> Optional[int]:
        if not self.ended_at:
            return None
        return int((self.ended_at - self.started_at).total_seconds() * 1000)

    def end(self) -> None:
        self.ended_at = datetime.now(timezone.utc)
