"""Tests for the asset ingestion pipeline."""

import pytest

from creative_spec.codec import CodecError, RawFile, decode_payload
from creative_spec.models import Rejected
from creative_spec.services import AssetIngestionService

from conftest import make_image


class TestAssetIngestion:
    @pytest.mark.asyncio
    async def test_upload_success_keeps_pointer_and_inline(self, uploaded, square_png):
        asset = await AssetIngestionService(uploaded).ingest(square_png)

        assert asset.url == "https://cdn.test/uploads/asset.png"
        assert decode_payload(asset.inline_data) == square_png.data
        assert (asset.width, asset.height, asset.aspect) == (1080, 1080, "square")
        assert asset.mime_type == "image/png"
        assert asset.size == len(square_png.data)

    @pytest.mark.asyncio
    async def test_upload_failure_falls_back_to_inline(self, gateway, vertical_jpg):
        gateway.upload_result = Rejected("Upload failed", 500)
        asset = await AssetIngestionService(gateway).ingest(vertical_jpg)

        assert asset.url is None
        assert asset.inline_data
        assert asset.aspect == "vertical"
        assert asset.mime_type == "image/jpeg"

    @pytest.mark.asyncio
    async def test_other_aspect(self, gateway):
        file = RawFile(name="wide.png", data=make_image(800, 600))
        asset = await AssetIngestionService(gateway).ingest(file)
        assert asset.aspect == "other"

    @pytest.mark.asyncio
    async def test_corrupt_image_still_ingested(self, gateway):
        file = RawFile(name="broken.png", data=b"\x89PNG\r\n\x1a\nthis is not really a png")
        asset = await AssetIngestionService(gateway).ingest(file)

        assert asset.width is None and asset.height is None
        assert asset.aspect is None
        assert asset.mime_type == "image/png"
        assert asset.inline_data

    @pytest.mark.asyncio
    async def test_empty_file_raises(self, gateway):
        with pytest.raises(CodecError):
            await AssetIngestionService(gateway).ingest(RawFile(name="empty.png", data=b""))


class TestStoreRouting:
    @pytest.mark.asyncio
    async def test_square_and_vertical_fill_slots(self, store, square_png, vertical_jpg):
        await store.ingest_asset(square_png)
        await store.ingest_asset(vertical_jpg)

        brief = store.draft.brief
        assert brief.assets["square"].name == "square.png"
        assert brief.assets["vertical"].name == "story.jpg"
        assert brief.primary_asset.name == "story.jpg"
        assert store.is_dirty

    @pytest.mark.asyncio
    async def test_other_aspect_not_routed(self, store):
        await store.ingest_asset(RawFile(name="wide.png", data=make_image(800, 600)))

        brief = store.draft.brief
        assert brief.assets == {}
        assert brief.primary_asset.name == "wide.png"

    @pytest.mark.asyncio
    async def test_empty_file_leaves_draft_untouched(self, store):
        version = store.version
        assert await store.ingest_asset(RawFile(name="empty.png", data=b"")) is None
        assert store.version == version
        assert store.draft.brief.primary_asset is None

    @pytest.mark.asyncio
    async def test_none_clears_primary(self, store, square_png):
        await store.ingest_asset(square_png)
        await store.ingest_asset(None)
        assert store.draft.brief.primary_asset is None
        assert "square" in store.draft.brief.assets
