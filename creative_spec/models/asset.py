"""Asset reference model."""

from dataclasses import dataclass, replace
from pathlib import PurePosixPath


@dataclass
class AssetReference:
    """Metadata plus dual storage (remote pointer and/or inline payload) for one image."""

    name: str
    size: int
    mime_type: str
    width: int | None = None
    height: int | None = None
    aspect: str | None = None        # "square" | "vertical" | "other"; None when undetected
    url: str | None = None           # Remote pointer
    inline_data: str | None = None   # base64 payload; never persisted

    @property
    def extension(self) -> str:
        return PurePosixPath(self.name).suffix.lower().lstrip(".")

    def without_inline(self) -> "AssetReference":
        """Copy safe for long-term persistence."""
        return replace(self, inline_data=None)
