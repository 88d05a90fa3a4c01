"""Operational sub-states of a draft (generation, persistence, sharing)."""

from dataclasses import dataclass


@dataclass
class GenerationState:
    is_generating: bool = False
    has_generated: bool = False
    error: str | None = None
    last_generated_at: int | None = None  # epoch ms


@dataclass
class PersistenceState:
    last_saved_at: int | None = None  # epoch ms
    is_saving: bool = False
    error: str | None = None          # Sticky until the next successful save


@dataclass
class ShareState:
    short_id: str | None = None
    share_url: str | None = None
    is_saving: bool = False
    error: str | None = None
