"""Snapshot repository - the quota-safe local persistence record of a draft."""

import json
import logging

from ..config import AUTOSAVE_STORAGE_KEY
from ..models import CreativeDraft
from ..serializers import (
    deserialize_ad_copy,
    deserialize_brief,
    deserialize_identity,
    deserialize_preview,
    serialize_ad_copy,
    serialize_brief,
    serialize_identity,
    serialize_preview,
)
from .storage import LocalStorage, StorageQuotaExceededError

logger = logging.getLogger(__name__)


class SnapshotRepository:
    """Read and write the autosave record: {savedAt, state: {brief, adCopy, preview, identity}}."""

    def __init__(self, storage: LocalStorage, key: str = AUTOSAVE_STORAGE_KEY):
        self.storage = storage
        self.key = key

    @staticmethod
    def build_record(draft: CreativeDraft, saved_at: int) -> dict:
        """Persistence record with inline asset payloads and the transient expand flag stripped."""
        preview = serialize_preview(draft.preview)
        preview.pop("forceExpandText", None)
        return {
            "savedAt": saved_at,
            "state": {
                "brief": serialize_brief(draft.brief, strip_inline=True),
                "adCopy": serialize_ad_copy(draft.ad_copy),
                "preview": preview,
                "identity": serialize_identity(draft.identity),
            },
        }

    def save(self, draft: CreativeDraft, saved_at: int) -> None:
        """
        Persist the draft.

        On a quota failure the write is retried once in place of the previous
        snapshot. If the record does not fit even without it, the previous
        snapshot is kept and StorageQuotaExceededError propagates.
        """
        self.write_record(self.build_record(draft, saved_at))

    def write_record(self, record: dict) -> None:
        """Write a prebuilt record with the same quota recovery as save()."""
        try:
            self.storage.write_json(self.key, record)
        except StorageQuotaExceededError as e:
            logger.warning(f"Snapshot exceeds storage quota, retrying in place of old snapshot: {e}")
            self.storage.replace_json(self.key, record)

    def load(self) -> dict | None:
        """
        Return the stored record as {savedAt, brief, adCopy, preview, identity} models.

        A record that cannot be parsed is removed so the next load starts fresh.
        """
        try:
            raw = self.storage.read_json(self.key)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load autosave snapshot, clearing it: {e}")
            self.clear()
            return None

        if not isinstance(raw, dict) or not isinstance(raw.get("state"), dict):
            return None

        state = raw["state"]
        try:
            return {
                "savedAt": raw.get("savedAt"),
                "brief": deserialize_brief(state.get("brief")),
                "adCopy": deserialize_ad_copy(state.get("adCopy")),
                "preview": deserialize_preview(state.get("preview")),
                "identity": deserialize_identity(state.get("identity")),
            }
        except (AttributeError, TypeError, ValueError) as e:
            logger.error(f"Autosave snapshot is malformed, clearing it: {e}")
            self.clear()
            return None

    def clear(self) -> None:
        try:
            self.storage.remove(self.key)
        except OSError as e:
            logger.error(f"Failed to clear autosave snapshot: {e}")
