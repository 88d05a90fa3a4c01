"""Export snapshot - read-only projection of a draft at export time."""

from dataclasses import dataclass, field

from .asset import AssetReference
from .identity import IdentityRecord


@dataclass(frozen=True)
class ExportMeta:
    company: str
    company_info: str
    objective: str
    custom_prompt: str
    formula: str
    identity_link: str
    url: str
    notes: str
    identity_data: IdentityRecord | None
    identity_method: str | None  # Set for degraded identities


@dataclass(frozen=True)
class ExportSnapshot:
    """Fully resolved draft values plus the tracked URL."""

    ref_name: str
    ad_name: str
    post_text: str
    headline: str
    description: str
    destination_url: str
    tracked_url: str
    display_link: str
    cta: str
    image_name: str
    identity_link: str
    platform: str
    device: str
    ad_type: str
    ad_format: str
    flight_start_date: str
    flight_end_date: str
    meta: ExportMeta
    primary_asset: AssetReference | None = None
    assets: dict[str, AssetReference] = field(default_factory=dict)
