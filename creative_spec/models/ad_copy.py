"""Ad copy model."""

from dataclasses import dataclass


@dataclass
class AdCopy:
    """User-facing, editable ad payload."""

    ad_name: str = ""
    primary_text: str = ""
    headline: str = ""
    description: str = ""
    destination_url: str = ""
    display_link: str = ""
    call_to_action: str = "Learn More"
