"""Identity verification model."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class VerificationStatus(Enum):
    UNATTEMPTED = "unattempted"
    PENDING = "pending"
    VERIFIED = "verified"
    DEGRADED = "degraded"
    FAILED = "failed"


@dataclass
class IdentityRecord:
    """Advertiser page data returned by verification (or synthesised from the URL)."""

    page_id: str | None = None
    name: str | None = None
    profile_picture: str | None = None
    url: str | None = None
    intro: str | None = None
    website: str | None = None
    categories: list[str] = field(default_factory=list)
    method: str | None = None            # How the record was obtained
    extra: dict[str, Any] = field(default_factory=dict)  # Unmodelled response fields


@dataclass
class IdentityVerification:
    """State of the advertiser identity check."""

    status: VerificationStatus = VerificationStatus.UNATTEMPTED
    data: IdentityRecord | None = None
    error: str | None = None

    @property
    def is_usable(self) -> bool:
        """Verified or degraded both count as success for the UI."""
        return self.status in (VerificationStatus.VERIFIED, VerificationStatus.DEGRADED)
