"""Tests for local storage and the autosave snapshot record."""

import json

import pytest

from creative_spec.models import IdentityRecord, IdentityVerification, VerificationStatus
from creative_spec.store import LocalStorage, SnapshotRepository, StorageQuotaExceededError


class TestLocalStorage:
    def test_write_read_remove(self, tmp_path):
        storage = LocalStorage(tmp_path, quota_bytes=1000)
        storage.write("k", "value")
        assert storage.read("k") == "value"
        assert storage.usage() == 5

        storage.remove("k")
        assert storage.read("k") is None
        storage.remove("k")

    def test_quota_refuses_and_keeps_existing(self, tmp_path):
        storage = LocalStorage(tmp_path, quota_bytes=10)
        storage.write("k", "small")

        with pytest.raises(StorageQuotaExceededError):
            storage.write("k", "x" * 11)
        assert storage.read("k") == "small"

    def test_overwrite_needs_room_for_both_copies(self, tmp_path):
        storage = LocalStorage(tmp_path, quota_bytes=10)
        storage.write("k", "x" * 6)

        with pytest.raises(StorageQuotaExceededError):
            storage.write("k", "y" * 6)

        storage.remove("k")
        storage.write("k", "y" * 6)
        assert storage.read("k") == "y" * 6

    def test_replace_excludes_old_value_from_quota(self, tmp_path):
        storage = LocalStorage(tmp_path, quota_bytes=10)
        storage.write("k", "x" * 6)

        storage.replace("k", "y" * 8)
        assert storage.read("k") == "y" * 8

    def test_replace_that_cannot_fit_keeps_old_value(self, tmp_path):
        storage = LocalStorage(tmp_path, quota_bytes=10)
        storage.write("k", "x" * 6)

        with pytest.raises(StorageQuotaExceededError):
            storage.replace("k", "y" * 11)
        assert storage.read("k") == "x" * 6


class TestSnapshotRepository:
    @pytest.mark.asyncio
    async def test_round_trip_strips_inline_payload(self, store, snapshots, uploaded, square_png):
        await store.ingest_asset(square_png)
        store.update_brief(website_url="https://joes.com", company_overview="Pizza", is_flighted=True)
        store.update_ad_copy(ad_name="Fall Sale", headline="Hot")
        store.set_preview(platform="instagram", device="mobile")
        store.set_identity_data(IdentityRecord(page_id="1", name="Joe's", extra={"likes": 5}))
        before = store.draft

        snapshots.save(before, 42)
        record = snapshots.load()

        assert record["savedAt"] == 42
        assert record["adCopy"] == before.ad_copy
        assert record["preview"] == before.preview
        assert record["identity"] == before.identity

        brief = record["brief"]
        assert brief.website_url == before.brief.website_url
        assert brief.utm == before.brief.utm
        assert brief.is_flighted
        assert brief.primary_asset == before.brief.primary_asset.without_inline()
        assert brief.assets["square"].url == "https://cdn.test/uploads/asset.png"
        assert brief.assets["square"].inline_data is None

    def test_persisted_json_has_no_inline_data(self, store, snapshots, storage):
        from creative_spec.models import AssetReference

        store.attach_asset(AssetReference(name="a.png", size=3, mime_type="image/png", aspect="square",
                                          inline_data="AAAA"))
        snapshots.save(store.draft, 1)

        raw = storage.read(snapshots.key)
        assert "AAAA" not in raw
        assert json.loads(raw)["state"]["brief"]["assets"]["square"]["name"] == "a.png"

    def test_pending_identity_restored_as_unattempted(self, store, snapshots):
        store.draft.identity = IdentityVerification(status=VerificationStatus.PENDING)
        snapshots.save(store.draft, 1)
        assert snapshots.load()["identity"].status == VerificationStatus.UNATTEMPTED

    def test_corrupt_record_is_cleared(self, snapshots, storage):
        storage.write(snapshots.key, "{not json")
        assert snapshots.load() is None
        assert storage.read(snapshots.key) is None

    def test_quota_retry_drops_old_snapshot(self, tmp_path, store):
        storage = LocalStorage(tmp_path, quota_bytes=1500)
        snapshots = SnapshotRepository(storage)
        storage.write("other", "x" * 10)
        storage.write(snapshots.key, "y" * 900)

        store.update_ad_copy(primary_text="z" * 400)
        snapshots.save(store.draft, 7)

        assert snapshots.load()["savedAt"] == 7

    def test_quota_still_exceeded_raises(self, tmp_path, store):
        snapshots = SnapshotRepository(LocalStorage(tmp_path, quota_bytes=50))
        with pytest.raises(StorageQuotaExceededError):
            snapshots.save(store.draft, 1)

    def test_load_snapshot_hydrates_clean_draft(self, store, snapshots, gateway):
        from creative_spec.store import DraftStore

        store.update_ad_copy(ad_name="Fall Sale")
        snapshots.save(store.draft, 99)

        fresh = DraftStore(gateway, snapshots=snapshots)
        assert fresh.load_snapshot() is True
        assert fresh.draft.ad_copy.ad_name == "Fall Sale"
        assert fresh.draft.brief.utm.content == "fall-sale"
        assert fresh.draft.persistence.last_saved_at == 99
        assert not fresh.is_dirty

    def test_record_too_big_even_alone_keeps_old_snapshot(self, tmp_path, store):
        storage = LocalStorage(tmp_path, quota_bytes=100_000)
        snapshots = SnapshotRepository(storage)
        store.update_ad_copy(ad_name="Fall Sale")
        snapshots.save(store.draft, 1)
        storage.quota_bytes = storage.usage() + 100

        store.update_ad_copy(primary_text="z" * 5000)
        with pytest.raises(StorageQuotaExceededError):
            snapshots.save(store.draft, 2)

        record = snapshots.load()
        assert record["savedAt"] == 1
        assert record["adCopy"].ad_name == "Fall Sale"

    def test_expanded_preview_flag_is_not_persisted(self, store, snapshots, storage):
        store.set_preview(platform="instagram")
        with store.expanded_preview():
            snapshots.save(store.draft, 1)

        state = json.loads(storage.read(snapshots.key))["state"]
        assert "forceExpandText" not in state["preview"]
        assert state["preview"]["platform"] == "instagram"
        assert snapshots.load()["preview"].force_expand_text is False
