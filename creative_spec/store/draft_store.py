"""Draft store - the single writer of a CreativeDraft."""

import asyncio
import logging
import zipfile
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable

from ..clients.gateway import CreativeGateway
from ..codec import CodecError, RawFile
from ..config import DEFAULT_UTM_CAMPAIGN, DEFAULT_UTM_MEDIUM, DEFAULT_UTM_SOURCE
from ..models import (
    SLOT_ROLES,
    AdCopy,
    AssetReference,
    Brief,
    CreativeDraft,
    ExportMeta,
    ExportSnapshot,
    GenerationState,
    IdentityRecord,
    IdentityVerification,
    Ok,
    PreviewSettings,
    ShareState,
    VerificationStatus,
    failure_message,
)
from ..serializers import (
    deserialize_ad_copy,
    deserialize_brief,
    deserialize_identity_record,
    deserialize_preview,
    serialize_ad_copy,
    serialize_brief,
    serialize_export_snapshot,
    serialize_identity_record,
    serialize_preview,
)
from ..services.assets import AssetIngestionService
from ..services.creative_sets import CreativeSet, parse_creative_sets
from ..services.identity import IdentityVerifier
from ..utils import ensure_https, humanize_method, now_ms, slugify, with_utm_params
from .snapshots import SnapshotRepository

logger = logging.getLogger(__name__)

# Brief fields owned by dedicated mutators
MANAGED_BRIEF_FIELDS = ("utm", "assets", "primary_asset", "detected_sets")

REQUIRED_FIELDS_ERROR = "Please complete required fields before generating copy"
AI_DISABLED_ERROR = "AI generation is disabled for this brief"
SHARE_NEEDS_IDENTITY_ERROR = "Please verify the advertiser page before sharing"

# Section tag carried by the notification that follows reset()
RESET_SECTION = "reset"


@dataclass(frozen=True)
class DraftChange:
    """Notification sent to subscribers after every state change."""

    version: int
    sections: tuple[str, ...]
    mutated: bool   # True when the change dirtied the draft
    is_dirty: bool


Listener = Callable[[DraftChange], None]


class DraftStore:
    """
    Owns one CreativeDraft and every way of changing it.

    Mutators bump the version and set the dirty flag; subscribers get a
    DraftChange after each change. Expected failures land in the draft's
    sub-state error fields rather than raising.
    """

    def __init__(
        self,
        gateway: CreativeGateway,
        snapshots: SnapshotRepository | None = None,
        ingestion: AssetIngestionService | None = None,
        verifier: IdentityVerifier | None = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.gateway = gateway
        self.snapshots = snapshots
        self.ingestion = ingestion or AssetIngestionService(gateway)
        self.verifier = verifier or IdentityVerifier(gateway)
        self.clock = clock
        self._draft = CreativeDraft()
        self._listeners: list[Listener] = []
        self._last_auto_content: str | None = None

    # ===== Access and notification =====

    @property
    def draft(self) -> CreativeDraft:
        """The live draft. Read it; change it only through this store."""
        return self._draft

    @property
    def version(self) -> int:
        return self._draft.version

    @property
    def is_dirty(self) -> bool:
        return self._draft.is_dirty

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, sections: tuple[str, ...], mutated: bool) -> None:
        change = DraftChange(self._draft.version, sections, mutated, self._draft.is_dirty)
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.exception(f"Draft listener failed for change {sections}")

    def _commit(self, *sections: str) -> None:
        self._draft.version += 1
        self._draft.is_dirty = True
        self._notify(sections, mutated=True)

    def _apply(self, target: Any, updates: dict[str, Any], section: str, reserved: tuple[str, ...] = ()) -> list[str]:
        applied = []
        for key, value in updates.items():
            if key.startswith("_") or key in reserved or not hasattr(target, key):
                logger.warning(f"Ignoring unknown {section} field: {key}")
                continue
            setattr(target, key, value)
            applied.append(key)
        return applied

    # ===== Field and section mutators =====

    def update_brief(self, **updates: Any) -> None:
        if self._apply(self._draft.brief, updates, "brief", MANAGED_BRIEF_FIELDS):
            self._commit("brief")

    def update_utm(self, **updates: Any) -> None:
        if self._apply(self._draft.brief.utm, updates, "utm"):
            self._commit("brief")

    def update_ad_copy(self, **updates: Any) -> None:
        applied = self._apply(self._draft.ad_copy, updates, "ad copy")
        if not applied:
            return
        if "ad_name" in applied:
            self._sync_utm_content()
        self._commit("ad_copy", "brief")

    def set_preview(self, **updates: Any) -> None:
        if self._apply(self._draft.preview, updates, "preview"):
            self._commit("preview")

    def set_campaign_context(self, short_id: str | None) -> None:
        self._draft.campaign_context = short_id or None
        self._commit("context")

    def _sync_utm_content(self) -> None:
        """Derive utm content from the ad name unless the user has edited it."""
        slug = slugify(self._draft.ad_copy.ad_name)
        if not slug:
            return
        utm = self._draft.brief.utm
        current = utm.content or ""
        if current == slug:
            self._last_auto_content = slug
            return
        if not current or current == self._last_auto_content:
            utm.content = slug
            self._last_auto_content = slug

    # ===== Assets =====

    def attach_asset(self, asset: AssetReference) -> None:
        """Make the asset primary and route it into its aspect slot, if any."""
        brief = self._draft.brief
        brief.primary_asset = asset
        if asset.aspect in SLOT_ROLES:
            brief.assets[asset.aspect] = asset
        self._commit("brief")

    def remove_asset(self, role: str | None = None) -> None:
        """Drop a slot ("square"/"vertical") or, with no role, the primary asset."""
        brief = self._draft.brief
        if role is None:
            brief.primary_asset = None
        elif brief.assets.pop(role, None) is None:
            return
        self._commit("brief")

    async def ingest_asset(self, file: RawFile | None) -> AssetReference | None:
        """Run a file through the ingestion pipeline and attach the result. None clears the primary asset."""
        if file is None:
            self.remove_asset()
            return None

        try:
            asset = await self.ingestion.ingest(file)
        except CodecError as e:
            logger.error(f"Failed to ingest {file.name}: {e}")
            return None

        self.attach_asset(asset)
        return asset

    async def ingest_creative_sets(self, archive: bytes) -> list[CreativeSet]:
        """Load the first creative set of a zip archive and remember the rest."""
        try:
            sets = await asyncio.to_thread(parse_creative_sets, archive)
        except zipfile.BadZipFile as e:
            logger.error(f"Failed to parse creative set archive: {e}")
            return []

        if not sets:
            logger.warning("No valid creative sets found in archive")
            return []

        first = sets[0]
        if first.square:
            await self.ingest_asset(first.square)
        if first.vertical:
            await self.ingest_asset(first.vertical)

        self._draft.brief.detected_sets = [s.name for s in sets[1:]]
        self._commit("brief")
        logger.info(f"{len(sets)} creative set(s) detected, loaded {first.name!r}")
        return sets

    # ===== Identity =====

    async def verify_identity(self, page_url: str, context_url: str | None = None) -> IdentityVerification:
        """Run a verification attempt; every attempt restarts from PENDING."""
        raw = (page_url or "").strip()
        resolved = ensure_https(raw) if raw else ""

        self._draft.identity = IdentityVerification(status=VerificationStatus.PENDING)
        self._notify(("identity",), mutated=False)

        outcome = await self.verifier.verify(resolved, context_url or self._draft.brief.website_url or None)
        self._draft.identity = outcome

        if outcome.status == VerificationStatus.VERIFIED:
            self._draft.brief.identity_link = resolved
            self._backfill_from_identity(outcome.data)
            self._commit("identity", "brief")
        elif outcome.status == VerificationStatus.DEGRADED:
            self._draft.brief.identity_link = resolved
            self._commit("identity", "brief")
        else:
            self._notify(("identity",), mutated=False)
        return outcome

    def set_identity_data(self, record: IdentityRecord | None) -> None:
        """Accept page data supplied directly (e.g. from a saved advertiser)."""
        if record is None:
            self._draft.identity = IdentityVerification()
        else:
            self._draft.identity = IdentityVerification(status=VerificationStatus.VERIFIED, data=record)
            self._backfill_from_identity(record)
        self._commit("identity", "brief")

    def _backfill_from_identity(self, record: IdentityRecord | None) -> None:
        """Fill empty brief fields from page data; never overwrite user input."""
        if record is None:
            return
        brief = self._draft.brief
        if not brief.company_overview and record.intro:
            brief.company_overview = record.intro
        if not brief.website_url and record.website:
            brief.website_url = ensure_https(record.website)

    # ===== Ad copy generation =====

    async def generate_ad_copy(self) -> bool:
        """Ask the generation service for copy. Returns True when copy was applied."""
        brief = self._draft.brief
        generation = self._draft.generation
        if generation.is_generating:
            return False

        if brief.disable_ai:
            generation.error = AI_DISABLED_ERROR
            self._notify(("generation",), mutated=False)
            return False
        if not brief.website_url or not brief.company_overview or not brief.campaign_objective:
            generation.error = REQUIRED_FIELDS_ERROR
            self._notify(("generation",), mutated=False)
            return False

        previously_generated = generation.has_generated
        generation.is_generating = True
        generation.error = None
        self._notify(("generation",), mutated=False)

        result = await self.gateway.generate_copy(self._generation_payload())

        if not isinstance(result, Ok):
            self._draft.generation = GenerationState(
                has_generated=previously_generated,
                error=failure_message(result),
                last_generated_at=generation.last_generated_at,
            )
            logger.error(f"Ad copy generation failed: {failure_message(result)}")
            self._notify(("generation",), mutated=False)
            return False

        copy = result.value
        ad_copy = self._draft.ad_copy
        ad_copy.ad_name = copy.ad_name
        ad_copy.primary_text = copy.primary_text
        ad_copy.headline = copy.headline
        ad_copy.description = copy.description
        ad_copy.display_link = copy.display_link
        ad_copy.call_to_action = copy.call_to_action or ad_copy.call_to_action
        ad_copy.destination_url = ensure_https(brief.website_url)
        self._sync_utm_content()
        self._draft.generation = GenerationState(has_generated=True, last_generated_at=self.clock())
        self._commit("ad_copy", "generation", "brief")

        label = humanize_method(result.method)
        action = "regenerated" if previously_generated else "generated"
        logger.info(f"Ad copy {action}" + (f" (AI - {label})" if label else ""))

        self.apply_tracked_url()
        return True

    async def regenerate_ad_copy(self) -> bool:
        return await self.generate_ad_copy()

    def _generation_payload(self) -> dict:
        brief = self._draft.brief
        asset = brief.primary_asset
        creative_data = None
        if asset is not None:
            if asset.inline_data:
                creative_data = {"type": asset.mime_type, "data": asset.inline_data}
            else:
                logger.warning("Asset payload missing (restored from storage); generating without image analysis")

        return {
            "website": ensure_https(brief.website_url),
            "companyOverview": brief.company_overview,
            "objective": brief.campaign_objective,
            "salesFormula": brief.sales_formula or None,
            "companyInfo": brief.company_info or None,
            "instructions": brief.additional_instructions or None,
            "customPrompt": brief.custom_prompt or None,
            "includeEmoji": brief.include_emoji,
            "removeCharacterLimit": brief.remove_character_limit,
            "facebookPageData": serialize_identity_record(self._draft.identity.data),
            "creativeData": creative_data,
        }

    # ===== Derived values =====

    def get_tracked_url(self) -> str:
        """Destination URL with UTM parameters applied; "" when there is no usable URL."""
        ad_copy = self._draft.ad_copy
        utm = self._draft.brief.utm
        base = ad_copy.destination_url or self._draft.brief.website_url
        if not base:
            return ""

        content = slugify(utm.content or ad_copy.ad_name or "")
        return with_utm_params(base, {
            "utm_campaign": (utm.campaign or "").strip() or DEFAULT_UTM_CAMPAIGN,
            "utm_medium": (utm.medium or "").strip() or DEFAULT_UTM_MEDIUM,
            "utm_source": (utm.source or "").strip() or DEFAULT_UTM_SOURCE,
            "utm_content": content or None,
        })

    def apply_tracked_url(self) -> None:
        """Write the tracked URL into the ad copy's destination URL."""
        tracked = self.get_tracked_url()
        if not tracked or tracked == self._draft.ad_copy.destination_url:
            return
        self._draft.ad_copy.destination_url = tracked
        self._commit("ad_copy")

    def export_snapshot(self) -> ExportSnapshot:
        draft = self._draft
        brief, ad_copy, preview = draft.brief, draft.ad_copy, draft.preview
        identity = draft.identity
        degraded = identity.status == VerificationStatus.DEGRADED
        return ExportSnapshot(
            ref_name=ad_copy.ad_name,
            ad_name=ad_copy.ad_name,
            post_text=ad_copy.primary_text,
            headline=ad_copy.headline,
            description=ad_copy.description,
            destination_url=ad_copy.destination_url or brief.website_url,
            tracked_url=self.get_tracked_url(),
            display_link=ad_copy.display_link,
            cta=ad_copy.call_to_action,
            image_name=brief.primary_asset.name if brief.primary_asset else "creative-image",
            identity_link=brief.identity_link,
            platform=preview.platform,
            device=preview.device,
            ad_type=preview.ad_type,
            ad_format=preview.ad_format,
            flight_start_date=brief.flight_start_date if brief.is_flighted else "",
            flight_end_date=brief.flight_end_date if brief.is_flighted else "",
            meta=ExportMeta(
                company=brief.company_overview,
                company_info=brief.company_info,
                objective=brief.campaign_objective,
                custom_prompt=brief.custom_prompt,
                formula=brief.sales_formula,
                identity_link=brief.identity_link,
                url=brief.website_url,
                notes=brief.additional_instructions,
                identity_data=identity.data if identity.is_usable else None,
                identity_method=identity.data.method if degraded and identity.data else None,
            ),
            primary_asset=brief.primary_asset,
            assets=dict(brief.assets),
        )

    @contextmanager
    def expanded_preview(self):
        """Force the preview's full-text view for the duration of the block."""
        preview = self._draft.preview
        previous = preview.force_expand_text
        preview.force_expand_text = True
        self._notify(("preview",), mutated=False)
        try:
            yield preview
        finally:
            preview.force_expand_text = previous
            self._notify(("preview",), mutated=False)

    # ===== Remote save and hydration =====

    async def save_and_share(self) -> ShareState:
        """Save the draft remotely and record its share link."""
        draft = self._draft
        if not draft.brief.identity_link:
            draft.share = ShareState(error=SHARE_NEEDS_IDENTITY_ERROR)
            self._notify(("share",), mutated=False)
            return draft.share

        draft.share.is_saving = True
        draft.share.error = None
        self._notify(("share",), mutated=False)

        payload = {
            "facebookUrl": draft.brief.identity_link,
            "brief": serialize_brief(draft.brief),
            "adCopy": serialize_ad_copy(draft.ad_copy),
            "previewSettings": serialize_preview(draft.preview),
            "specExport": serialize_export_snapshot(self.export_snapshot()),
            "facebookPageData": serialize_identity_record(draft.identity.data),
            "campaignShortId": draft.campaign_context,
        }
        result = await self.gateway.save_draft(payload)

        if isinstance(result, Ok):
            draft.share = ShareState(short_id=result.value.short_id, share_url=result.value.public_url)
            logger.info(f"Draft saved remotely: {result.value.public_url}")
        else:
            draft.share = ShareState(
                short_id=draft.share.short_id,
                share_url=draft.share.share_url,
                error=failure_message(result),
            )
            logger.error(f"Remote save failed: {failure_message(result)}")
        self._notify(("share",), mutated=False)
        return draft.share

    async def load_remote(self, advertiser: str, ad_id: str) -> bool:
        """Replace the draft with a remotely stored record. Failure leaves the draft untouched."""
        result = await self.gateway.load_draft(advertiser, ad_id)
        if not isinstance(result, Ok):
            logger.error(f"Failed to load remote draft {advertiser}/{ad_id}: {failure_message(result)}")
            return False

        ad = result.value["ad"]
        advertiser_info = result.value.get("advertiser") or {}
        draft = CreativeDraft(
            brief=deserialize_brief(ad.get("brief")),
            ad_copy=deserialize_ad_copy(ad.get("adCopy")),
            preview=deserialize_preview(ad.get("previewSettings")),
            identity=IdentityVerification(
                status=VerificationStatus.VERIFIED,
                data=deserialize_identity_record(advertiser_info.get("page_data")),
            ),
            generation=GenerationState(has_generated=True),
            version=self._draft.version + 1,
            is_preview_mode=True,
            advertiser_identifier=advertiser_info.get("username") or advertiser_info.get("page_id"),
        )
        self._replace(draft)
        return True

    # ===== Local snapshot lifecycle =====

    def load_snapshot(self) -> bool:
        """Hydrate from the local autosave snapshot, if one exists."""
        if self.snapshots is None:
            return False
        record = self.snapshots.load()
        if record is None:
            return False

        self.hydrate(record["brief"], record["adCopy"], record["preview"], record["identity"], record["savedAt"])
        return True

    def hydrate(
        self,
        brief: Brief,
        ad_copy: AdCopy,
        preview: PreviewSettings,
        identity: IdentityVerification,
        saved_at: int | None = None,
    ) -> None:
        """Replace the draft with stored sections; the result is clean."""
        draft = CreativeDraft(
            brief=brief,
            ad_copy=ad_copy,
            preview=preview,
            identity=identity,
            version=self._draft.version + 1,
        )
        draft.persistence.last_saved_at = saved_at
        self._replace(draft)

    def mark_saving(self) -> None:
        self._draft.persistence.is_saving = True
        self._notify(("persistence",), mutated=False)

    def mark_saved(self, saved_at: int, version: int) -> None:
        """Record a successful save of `version`; stays dirty if edits arrived since."""
        persistence = self._draft.persistence
        persistence.last_saved_at = saved_at
        persistence.is_saving = False
        persistence.error = None
        if version == self._draft.version:
            self._draft.is_dirty = False
        self._notify(("persistence",), mutated=False)

    def mark_save_failed(self, message: str) -> None:
        persistence = self._draft.persistence
        persistence.is_saving = False
        persistence.error = message
        self._notify(("persistence",), mutated=False)

    def reset(self) -> None:
        """Discard the draft and its local snapshot."""
        if self.snapshots is not None:
            self.snapshots.clear()
        share = self._draft.share
        self._replace(CreativeDraft(share=share, version=self._draft.version + 1), RESET_SECTION)

    def _replace(self, draft: CreativeDraft, *extra: str) -> None:
        draft.is_dirty = False
        self._draft = draft
        slug = slugify(draft.ad_copy.ad_name)
        self._last_auto_content = slug if slug and draft.brief.utm.content == slug else None
        self._notify(("brief", "ad_copy", "preview", "identity") + extra, mutated=False)
