"""Preview view-state model."""

from dataclasses import dataclass


@dataclass
class PreviewSettings:
    """Placement currently viewed. Not required for export."""

    platform: str = "facebook"       # "facebook" | "instagram"
    device: str = "desktop"          # "desktop" | "mobile"
    ad_type: str = "feed"            # "feed" | "story" | "reel"
    ad_format: str = "original"      # "single_image" | "original" | "1:1" | "4:5"
    force_expand_text: bool = False  # Show full primary text instead of truncating
