"""Creative draft aggregate."""

from dataclasses import dataclass, field

from .ad_copy import AdCopy
from .brief import Brief
from .identity import IdentityVerification
from .preview import PreviewSettings
from .state import GenerationState, PersistenceState, ShareState


@dataclass
class CreativeDraft:
    """One in-progress creative. Mutated only through DraftStore."""

    brief: Brief = field(default_factory=Brief)
    ad_copy: AdCopy = field(default_factory=AdCopy)
    preview: PreviewSettings = field(default_factory=PreviewSettings)
    identity: IdentityVerification = field(default_factory=IdentityVerification)
    generation: GenerationState = field(default_factory=GenerationState)
    persistence: PersistenceState = field(default_factory=PersistenceState)
    share: ShareState = field(default_factory=ShareState)
    version: int = 0
    is_dirty: bool = False
    is_preview_mode: bool = False
    advertiser_identifier: str | None = None
    campaign_context: str | None = None  # Campaign short id for auto-assignment
