"""Creative brief model - advertiser inputs that drive the creative."""

from dataclasses import dataclass, field

from ..config import DEFAULT_UTM_CAMPAIGN, DEFAULT_UTM_MEDIUM, DEFAULT_UTM_SOURCE
from .asset import AssetReference

SLOT_ROLES = ("square", "vertical")


@dataclass
class UTMParameters:
    """Tracking parameters appended to the destination URL."""

    campaign: str = DEFAULT_UTM_CAMPAIGN
    medium: str = DEFAULT_UTM_MEDIUM
    source: str = DEFAULT_UTM_SOURCE
    content: str = ""  # Auto-derived from the ad name until edited by hand


@dataclass
class Brief:
    """Advertiser identity, business context, tracking and creative assets."""

    identity_link: str = ""              # Advertiser page URL
    website_url: str = ""
    company_overview: str = ""
    campaign_objective: str = ""
    company_info: str = ""
    additional_instructions: str = ""
    custom_prompt: str = ""
    sales_formula: str = ""
    creative_type: str = "traffic"
    include_emoji: bool = True
    remove_character_limit: bool = False
    disable_ai: bool = False
    utm: UTMParameters = field(default_factory=UTMParameters)
    is_flighted: bool = False
    flight_start_date: str = ""          # YYYY-MM-DD
    flight_end_date: str = ""
    primary_asset: AssetReference | None = None           # Latest upload, any aspect
    assets: dict[str, AssetReference] = field(default_factory=dict)  # keyed by SLOT_ROLES
    detected_sets: list[str] = field(default_factory=list)  # Remaining set names from an archive
