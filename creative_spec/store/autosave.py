"""Autosave - debounced snapshot writes driven by draft changes."""

import asyncio
import logging
from enum import Enum
from typing import Callable

from ..config import AUTOSAVE_DELAY_SECONDS
from ..utils import now_ms
from .draft_store import RESET_SECTION, DraftChange, DraftStore
from .snapshots import SnapshotRepository
from .storage import StorageQuotaExceededError

logger = logging.getLogger(__name__)


class AutosaveStatus(Enum):
    IDLE = "idle"
    ARMED = "armed"
    SAVING = "saving"


class AutosaveScheduler:
    """
    Save the draft once a burst of edits has been quiet for `delay` seconds.

    Each dirtying change re-arms the timer (last write wins). A draft that
    turns clean before the timer fires is not saved. Save failures become the
    draft's sticky persistence error; the next edit re-arms as usual.
    """

    def __init__(
        self,
        store: DraftStore,
        snapshots: SnapshotRepository,
        delay: float = AUTOSAVE_DELAY_SECONDS,
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store
        self.snapshots = snapshots
        self.delay = delay
        self.clock = clock
        self._loop: asyncio.AbstractEventLoop | None = None
        self._unsubscribe: Callable[[], None] | None = None
        self._timer: asyncio.Task | None = None
        self._inflight: asyncio.Task | None = None
        self._discard_inflight = False
        self.save_count = 0

    @property
    def status(self) -> AutosaveStatus:
        if self._inflight is not None:
            return AutosaveStatus.SAVING
        if self._timer is not None:
            return AutosaveStatus.ARMED
        return AutosaveStatus.IDLE

    def start(self) -> None:
        """Begin watching the store. Must be called from inside the running loop."""
        if self._unsubscribe is not None:
            return
        self._loop = asyncio.get_running_loop()
        self._unsubscribe = self.store.subscribe(self._on_change)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._cancel()

    async def wait_idle(self) -> None:
        """Wait until no timer is armed and no save is running."""
        while self._timer is not None or self._inflight is not None:
            await asyncio.wait({self._timer or self._inflight})

    def _on_change(self, change: DraftChange) -> None:
        if RESET_SECTION in change.sections:
            self._cancel()
            self._discard_inflight = self._inflight is not None
            return
        if change.mutated:
            self._arm()
        elif not change.is_dirty:
            self._cancel()

    def _arm(self) -> None:
        if self._loop is None:
            logger.warning("Autosave not started; change will not be saved")
            return
        self._cancel()
        self._timer = self._loop.create_task(self._run())

    def _cancel(self) -> None:
        """Cancel an armed timer. A save already in progress runs to completion."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def _run(self) -> None:
        await asyncio.sleep(self.delay)
        task = asyncio.current_task()
        if self._timer is task:
            self._timer = None
        self._inflight = task
        try:
            await self.flush()
        finally:
            if self._inflight is task:
                self._inflight = None

    async def flush(self) -> bool:
        """
        Save the draft now if it is dirty.

        The record is built on the loop thread so it reflects one version of
        the draft; the write itself runs in a worker thread.
        """
        store = self.store
        if not store.is_dirty:
            return False

        version = store.version
        saved_at = self.clock()
        record = self.snapshots.build_record(store.draft, saved_at)
        store.mark_saving()
        self._discard_inflight = False

        try:
            await asyncio.to_thread(self.snapshots.write_record, record)
        except StorageQuotaExceededError as e:
            logger.error(f"Autosave failed, storage quota exceeded: {e}")
            store.mark_save_failed("Local storage is full; the draft could not be saved")
            return False
        except OSError as e:
            logger.error(f"Autosave failed: {e}")
            store.mark_save_failed(f"Failed to save draft: {e}")
            return False

        if self._discard_inflight:
            # Draft was reset while this write was running
            self._discard_inflight = False
            await asyncio.to_thread(self.snapshots.clear)
            logger.info("Discarded snapshot written before reset")
            return False

        self.save_count += 1
        store.mark_saved(saved_at, version)
        logger.info(f"Draft autosaved (version {version})")
        return True
