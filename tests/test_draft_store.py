"""Tests for draft store mutations and derived values."""

from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs, urlsplit

import pytest

from creative_spec.clients import CreativeGateway, GeneratedCopy, SavedDraft
from creative_spec.models import IdentityRecord, Ok, Rejected, Unreachable, VerificationStatus
from creative_spec.store import DraftStore


def generated(**overrides):
    fields = dict(
        ad_name="Fall Sale",
        primary_text="Fresh pizza, fast.",
        headline="Order tonight",
        description="Free delivery",
        display_link="joes.com",
        call_to_action="Order Now",
    )
    fields.update(overrides)
    return GeneratedCopy(**fields)


def query(url):
    return {key: values[0] for key, values in parse_qs(urlsplit(url).query).items()}


class TestMutations:
    def test_every_mutation_bumps_version_and_dirties(self, store):
        changes = []
        store.subscribe(changes.append)

        store.update_brief(website_url="https://joes.com")
        store.update_ad_copy(headline="Hi")
        store.set_preview(platform="instagram")

        assert store.version == 3
        assert store.is_dirty
        assert [c.mutated for c in changes] == [True, True, True]

    def test_unknown_fields_are_ignored(self, store):
        store.update_brief(not_a_field="x", assets={})
        assert store.version == 0
        assert not store.is_dirty

    def test_unsubscribe(self, store):
        changes = []
        unsubscribe = store.subscribe(changes.append)
        unsubscribe()
        store.update_brief(website_url="https://joes.com")
        assert changes == []

    def test_failing_listener_does_not_break_mutation(self, store):
        def broken(change):
            raise RuntimeError("listener bug")

        store.subscribe(broken)
        store.update_brief(website_url="https://joes.com")
        assert store.draft.brief.website_url == "https://joes.com"


class TestTrackedUrl:
    def test_tracked_url_parameters(self, store):
        store.update_ad_copy(destination_url="https://x.com", ad_name="Fall Sale")
        assert store.get_tracked_url() == (
            "https://x.com/?utm_campaign=Ignite&utm_medium=Facebook"
            "&utm_source=Townsquare&utm_content=fall-sale"
        )

    def test_ad_name_change_updates_only_content(self, store):
        store.update_ad_copy(destination_url="https://x.com", ad_name="Fall Sale")
        store.update_ad_copy(ad_name="Winter Deals")

        params = query(store.get_tracked_url())
        assert params == {
            "utm_campaign": "Ignite",
            "utm_medium": "Facebook",
            "utm_source": "Townsquare",
            "utm_content": "winter-deals",
        }

    def test_manual_content_is_not_clobbered(self, store):
        store.update_ad_copy(destination_url="https://x.com", ad_name="Fall Sale")
        store.update_utm(content="my-custom")
        store.update_ad_copy(ad_name="Winter Deals")

        assert store.draft.brief.utm.content == "my-custom"
        assert query(store.get_tracked_url())["utm_content"] == "my-custom"

    def test_blank_utm_fields_use_defaults(self, store):
        store.update_brief(website_url="https://joes.com")
        store.update_utm(campaign="  ", medium="", source="Spring")

        params = query(store.get_tracked_url())
        assert params["utm_campaign"] == "Ignite"
        assert params["utm_medium"] == "Facebook"
        assert params["utm_source"] == "Spring"
        assert "utm_content" not in params

    def test_uppercase_scheme_destination(self, store):
        store.update_ad_copy(destination_url="HTTPS://Example.com/shop", ad_name="Fall Sale")
        tracked = store.get_tracked_url()

        assert tracked.startswith("https://Example.com/shop?")
        assert query(tracked)["utm_content"] == "fall-sale"

    def test_invalid_url_gives_empty_result(self, store):
        store.update_ad_copy(destination_url="https://", ad_name="Fall Sale")
        assert store.get_tracked_url() == ""

    def test_no_url(self, store):
        assert store.get_tracked_url() == ""


class TestGeneration:
    def fill_required(self, store):
        store.update_brief(
            website_url="joes.com",
            company_overview="Pizza place",
            campaign_objective="Drive orders",
        )

    @pytest.mark.asyncio
    async def test_missing_fields_skip_the_call(self, store, gateway):
        assert await store.generate_ad_copy() is False
        assert store.draft.generation.error
        assert gateway.called("generate_copy") == []

    @pytest.mark.asyncio
    async def test_disabled_ai(self, store, gateway):
        self.fill_required(store)
        store.update_brief(disable_ai=True)
        assert await store.generate_ad_copy() is False
        assert gateway.called("generate_copy") == []

    @pytest.mark.asyncio
    async def test_success_applies_copy_and_tracked_url(self, store, gateway):
        self.fill_required(store)
        gateway.generate_result = Ok(generated(), method="openai")

        assert await store.generate_ad_copy() is True

        ad_copy = store.draft.ad_copy
        assert ad_copy.headline == "Order tonight"
        assert ad_copy.call_to_action == "Order Now"
        assert ad_copy.destination_url.startswith("https://joes.com/?utm_campaign=Ignite")
        assert query(ad_copy.destination_url)["utm_content"] == "fall-sale"
        assert store.draft.generation.has_generated
        assert store.draft.generation.last_generated_at == 1_700_000_000_000

        payload = gateway.called("generate_copy")[0][1]
        assert payload["website"] == "https://joes.com"
        assert payload["creativeData"] is None

    @pytest.mark.asyncio
    async def test_sends_inline_asset(self, store, uploaded, square_png):
        self.fill_required(store)
        await store.ingest_asset(square_png)
        uploaded.generate_result = Ok(generated())

        await store.regenerate_ad_copy()

        creative = uploaded.called("generate_copy")[0][1]["creativeData"]
        assert creative["type"] == "image/png"
        assert creative["data"] == store.draft.brief.primary_asset.inline_data

    @pytest.mark.asyncio
    async def test_failure_sets_error(self, store, gateway):
        self.fill_required(store)
        gateway.generate_result = Rejected("Rate limited", 429)

        assert await store.generate_ad_copy() is False
        assert store.draft.generation.error == "Rate limited"
        assert not store.draft.generation.is_generating
        assert store.draft.ad_copy.headline == ""


class TestShare:
    @pytest.mark.asyncio
    async def test_requires_identity_link(self, store, gateway):
        share = await store.save_and_share()
        assert share.error
        assert gateway.called("save_draft") == []

    @pytest.mark.asyncio
    async def test_success(self, store, gateway):
        gateway.verify_result = Ok(IdentityRecord(page_id="1", name="Joe's"))
        await store.verify_identity("https://facebook.com/joes")
        store.set_campaign_context("camp01")
        gateway.save_result = Ok(SavedDraft("abc123", "https://app.test/joes/abc123"))

        share = await store.save_and_share()

        assert share.short_id == "abc123"
        assert share.share_url == "https://app.test/joes/abc123"
        payload = gateway.called("save_draft")[0][1]
        assert payload["facebookUrl"] == "https://facebook.com/joes"
        assert payload["campaignShortId"] == "camp01"
        assert payload["facebookPageData"]["name"] == "Joe's"
        assert "specExport" in payload

    @pytest.mark.asyncio
    async def test_failure_keeps_draft(self, store, gateway):
        store.update_brief(identity_link="https://facebook.com/joes")
        gateway.save_result = Unreachable()

        share = await store.save_and_share()

        assert share.error == "Unable to reach API server"
        assert share.short_id is None
        assert store.draft.brief.identity_link == "https://facebook.com/joes"


class TestRemoteHydration:
    @pytest.mark.asyncio
    async def test_load_remote(self, store, gateway):
        gateway.load_result = Ok({
            "ad": {
                "brief": {"websiteUrl": "https://joes.com", "utm": {"content": "fall-sale"}},
                "adCopy": {"adName": "Fall Sale", "headline": "Hot"},
                "previewSettings": {"platform": "instagram"},
            },
            "advertiser": {"username": "joes", "page_data": {"page_id": "1", "name": "Joe's"}},
        })

        assert await store.load_remote("joes", "abc") is True

        draft = store.draft
        assert draft.ad_copy.headline == "Hot"
        assert draft.preview.platform == "instagram"
        assert draft.identity.status == VerificationStatus.VERIFIED
        assert draft.identity.data.name == "Joe's"
        assert draft.generation.has_generated
        assert draft.is_preview_mode
        assert draft.advertiser_identifier == "joes"
        assert not store.is_dirty

        # Hydrated content came from the ad name, so it keeps following it
        store.update_ad_copy(ad_name="Winter Deals")
        assert draft.brief.utm.content == "winter-deals"

    @pytest.mark.asyncio
    async def test_load_failure_leaves_draft(self, store, gateway):
        store.update_ad_copy(headline="Mine")
        gateway.load_result = Rejected("Failed to load preview", 404)

        assert await store.load_remote("joes", "abc") is False
        assert store.draft.ad_copy.headline == "Mine"


class TestLifecycle:
    def test_mark_saved_respects_newer_edits(self, store):
        store.update_brief(website_url="https://joes.com")
        saved_version = store.version
        store.update_brief(company_overview="More")

        store.mark_saved(123, saved_version)
        assert store.is_dirty
        assert store.draft.persistence.last_saved_at == 123

        store.mark_saved(456, store.version)
        assert not store.is_dirty

    def test_mark_save_failed_is_sticky(self, store):
        store.update_brief(website_url="https://joes.com")
        store.mark_save_failed("Local storage is full")
        store.update_brief(company_overview="More")
        assert store.draft.persistence.error == "Local storage is full"

    def test_reset_clears_draft_and_snapshot(self, store, snapshots):
        store.update_ad_copy(ad_name="Fall Sale")
        snapshots.save(store.draft, 1)

        store.reset()

        assert store.draft.ad_copy.ad_name == ""
        assert not store.is_dirty
        assert snapshots.load() is None

    def test_expanded_preview_restores(self, store):
        version = store.version
        with store.expanded_preview() as preview:
            assert preview.force_expand_text
        assert not store.draft.preview.force_expand_text
        assert store.version == version

    def test_expanded_preview_restores_on_error(self, store):
        store.set_preview(force_expand_text=False)
        with pytest.raises(RuntimeError):
            with store.expanded_preview():
                raise RuntimeError("capture failed")
        assert store.draft.preview.force_expand_text is False

    def test_export_snapshot(self, store):
        store.update_brief(website_url="https://joes.com", is_flighted=False, flight_start_date="2024-01-01")
        store.update_ad_copy(ad_name="Fall Sale", headline="Hot")

        snapshot = store.export_snapshot()

        assert snapshot.ref_name == "Fall Sale"
        assert snapshot.destination_url == "https://joes.com"
        assert snapshot.tracked_url.endswith("utm_content=fall-sale")
        assert snapshot.image_name == "creative-image"
        assert snapshot.flight_start_date == ""
        assert snapshot.meta.identity_data is None


def test_store_without_snapshots(gateway):
    store = DraftStore(gateway)
    assert store.load_snapshot() is False
    store.reset()
    assert store.version == 1


class TestMalformedGatewayBody:
    @pytest.fixture
    def live_store(self, snapshots):
        gateway = CreativeGateway(base_url="http://api.test", max_retries=1)
        return DraftStore(gateway, snapshots=snapshots, clock=lambda: 1_700_000_000_000)

    @pytest.mark.asyncio
    @patch("creative_spec.clients.gateway.requests.post")
    async def test_identity_does_not_stay_pending(self, mock_post, live_store):
        mock_post.return_value = MagicMock(status_code=200, ok=True, text='"ok"', json=MagicMock(return_value="ok"))

        await live_store.verify_identity("https://facebook.com/joes")

        assert live_store.draft.identity.status == VerificationStatus.FAILED
        assert live_store.draft.identity.error == "Invalid response from server"

    @pytest.mark.asyncio
    @patch("creative_spec.clients.gateway.requests.post")
    async def test_ingestion_falls_back_to_inline(self, mock_post, live_store, square_png):
        mock_post.return_value = MagicMock(status_code=200, ok=True, text="[1]", json=MagicMock(return_value=[1]))

        asset = await live_store.ingest_asset(square_png)

        assert asset.url is None
        assert asset.inline_data
        assert live_store.draft.brief.assets["square"] == asset
