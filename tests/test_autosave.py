"""Tests for the debounced autosave scheduler."""

import asyncio
import functools
from unittest.mock import patch

import pytest

from creative_spec.store import AutosaveScheduler, AutosaveStatus, StorageQuotaExceededError

DELAY = 0.05


@pytest.fixture
def ticks():
    return iter(range(1000, 100000, 10))


@pytest.fixture
def autosave(store, snapshots, ticks):
    scheduler = AutosaveScheduler(store, snapshots, delay=DELAY, clock=lambda: next(ticks))
    yield scheduler
    scheduler.stop()


class TestAutosave:
    @pytest.mark.asyncio
    async def test_burst_produces_one_save(self, store, snapshots, autosave):
        autosave.start()
        for i in range(5):
            store.update_ad_copy(headline=f"Headline {i}")
            await asyncio.sleep(DELAY / 5)
        assert autosave.status == AutosaveStatus.ARMED

        await autosave.wait_idle()

        assert autosave.save_count == 1
        assert not store.is_dirty
        assert snapshots.load()["adCopy"].headline == "Headline 4"
        assert store.draft.persistence.last_saved_at == snapshots.load()["savedAt"]
        assert autosave.status == AutosaveStatus.IDLE

    @pytest.mark.asyncio
    async def test_clean_draft_cancels_armed_timer(self, store, snapshots, autosave):
        autosave.start()
        store.update_ad_copy(headline="Draft")
        store.reset()

        await asyncio.sleep(DELAY * 3)

        assert autosave.save_count == 0
        assert snapshots.load() is None

    @pytest.mark.asyncio
    async def test_quota_failure_is_sticky_and_rearms(self, store, snapshots, autosave):
        autosave.start()
        with patch.object(snapshots, "write_record", side_effect=StorageQuotaExceededError("k", 10, 5)):
            store.update_ad_copy(headline="Too big")
            await autosave.wait_idle()

        assert autosave.save_count == 0
        assert store.is_dirty
        assert "full" in store.draft.persistence.error

        store.update_ad_copy(headline="Smaller")
        await autosave.wait_idle()

        assert autosave.save_count == 1
        assert store.draft.persistence.error is None

    @pytest.mark.asyncio
    async def test_edit_during_save_stays_dirty(self, store, snapshots, autosave):
        autosave.start()
        original_write = snapshots.write_record
        edits = ["Later edit"]

        def slow_write(record):
            # One edit lands while the first write is in progress
            if edits:
                store_loop.call_soon_threadsafe(functools.partial(store.update_ad_copy, headline=edits.pop()))
            original_write(record)

        store_loop = asyncio.get_running_loop()
        with patch.object(snapshots, "write_record", side_effect=slow_write):
            store.update_ad_copy(headline="First")
            await asyncio.sleep(DELAY * 1.5)
            await autosave.wait_idle()

        assert store.draft.ad_copy.headline == "Later edit"
        assert snapshots.load()["adCopy"].headline == "Later edit"
        assert not store.is_dirty

    @pytest.mark.asyncio
    async def test_flush_when_clean_is_noop(self, store, autosave):
        assert await autosave.flush() is False

    @pytest.mark.asyncio
    async def test_stop_cancels_pending_save(self, store, snapshots, autosave):
        autosave.start()
        store.update_ad_copy(headline="Unsaved")
        autosave.stop()

        await asyncio.sleep(DELAY * 3)

        assert snapshots.load() is None
        assert autosave.status == AutosaveStatus.IDLE
