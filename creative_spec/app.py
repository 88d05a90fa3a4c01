"""Composition root - wires the draft store and its collaborators from config."""

import logging
from dataclasses import dataclass

from .clients import CreativeGateway
from .config import (
    AUTOSAVE_DELAY_SECONDS,
    CREATIVE_API_URL,
    PREVIEW_SETTLE_SECONDS,
    STORAGE_DIR,
    STORAGE_QUOTA_BYTES,
)
from .preview import CardPreviewSurface
from .services import AssetIngestionService, BundleAssembler, IdentityVerifier
from .store import AutosaveScheduler, DraftStore, LocalStorage, SnapshotRepository

logger = logging.getLogger(__name__)


@dataclass
class App:
    gateway: CreativeGateway
    storage: LocalStorage
    snapshots: SnapshotRepository
    store: DraftStore
    autosave: AutosaveScheduler
    preview: CardPreviewSurface
    exporter: BundleAssembler

    async def start(self, restore: bool = True) -> bool:
        """Hydrate from the local snapshot (optional) and start autosaving. Returns True if restored."""
        restored = self.store.load_snapshot() if restore else False
        if restored:
            logger.info("Restored draft from local snapshot")
        self.autosave.start()
        return restored

    async def stop(self) -> None:
        """Stop autosaving after any pending save has been written."""
        if self.store.is_dirty:
            await self.autosave.flush()
        self.autosave.stop()


def create_app(
    api_url: str = CREATIVE_API_URL,
    storage_dir: str = STORAGE_DIR,
    quota_bytes: int = STORAGE_QUOTA_BYTES,
    autosave_delay: float = AUTOSAVE_DELAY_SECONDS,
    settle_seconds: float = PREVIEW_SETTLE_SECONDS,
    gateway: CreativeGateway | None = None,
) -> App:
    gateway = gateway or CreativeGateway(base_url=api_url)
    storage = LocalStorage(storage_dir, quota_bytes)
    snapshots = SnapshotRepository(storage)
    store = DraftStore(
        gateway,
        snapshots=snapshots,
        ingestion=AssetIngestionService(gateway),
        verifier=IdentityVerifier(gateway),
    )
    preview = CardPreviewSurface(store)
    return App(
        gateway=gateway,
        storage=storage,
        snapshots=snapshots,
        store=store,
        autosave=AutosaveScheduler(store, snapshots, delay=autosave_delay),
        preview=preview,
        exporter=BundleAssembler(store, gateway, preview, settle_seconds=settle_seconds),
    )
