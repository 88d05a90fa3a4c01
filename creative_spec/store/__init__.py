"""Draft store, local persistence and autosave."""

from .autosave import AutosaveScheduler, AutosaveStatus
from .draft_store import DraftChange, DraftStore
from .snapshots import SnapshotRepository
from .storage import LocalStorage, StorageQuotaExceededError

__all__ = [
    "AutosaveScheduler",
    "AutosaveStatus",
    "DraftChange",
    "DraftStore",
    "SnapshotRepository",
    "LocalStorage",
    "StorageQuotaExceededError",
]
