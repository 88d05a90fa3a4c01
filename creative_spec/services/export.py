"""Export bundle assembler - one zip with independent, individually fault-isolated sections."""

import asyncio
import json
import logging
import zipfile
from dataclasses import dataclass, field
from io import BytesIO
from typing import Awaitable, Callable

from openpyxl.utils.exceptions import IllegalCharacterError

from ..clients.gateway import CreativeGateway
from ..codec import CodecError, decode_payload
from ..config import (
    BUNDLE_COMPRESSION_LEVEL,
    BUNDLE_JSON_NAME,
    BUNDLE_PREVIEW_JPG,
    BUNDLE_PREVIEW_PNG,
    BUNDLE_TEXT_NAME,
    CANONICAL_EXTENSIONS,
    PREVIEW_SETTLE_SECONDS,
)
from ..models import AssetReference, ExportSnapshot, Ok, Rejected, Result, failure_message
from ..preview import PreviewCaptureError, PreviewSurface
from ..serializers import serialize_export_snapshot
from ..utils import now_ms, slugify
from .spec_sheet import render_spreadsheet, render_text, spreadsheet_filename

logger = logging.getLogger(__name__)

SQUARE_CANONICAL = "creatives/1080x1080-feed"
VERTICAL_CANONICAL = "creatives/1080x1920-story"


class BundleError(Exception):
    """The archive itself could not be produced."""
    pass


class AssetResolutionError(Exception):
    """Neither the remote pointer nor the inline payload yielded bytes."""
    pass


@dataclass
class SectionOutput:
    """Files produced by one section, plus any partial-failure warnings."""

    files: dict[str, bytes] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)


@dataclass
class Bundle:
    data: bytes
    filename: str
    warnings: list[str]
    sections: list[str]  # Sections that contributed files

    @property
    def size(self) -> int:
        return len(self.data)


Section = Callable[[ExportSnapshot], Awaitable[Result[SectionOutput]]]


class BundleAssembler:
    """
    Build the export bundle for a draft store.

    Sections run in a fixed order: JSON, spreadsheet, text, previews,
    creatives. A failed section becomes a warning; only finalising the
    archive can fail the export (BundleError).
    """

    def __init__(
        self,
        store,
        gateway: CreativeGateway,
        preview_surface: PreviewSurface | None = None,
        settle_seconds: float = PREVIEW_SETTLE_SECONDS,
        compression_level: int = BUNDLE_COMPRESSION_LEVEL,
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store
        self.gateway = gateway
        self.preview_surface = preview_surface
        self.settle_seconds = settle_seconds
        self.compression_level = compression_level
        self.clock = clock

    @property
    def sections(self) -> list[tuple[str, Section]]:
        return [
            ("json", self.json_section),
            ("spreadsheet", self.spreadsheet_section),
            ("text", self.text_section),
            ("previews", self.preview_section),
            ("creatives", self.creatives_section),
        ]

    async def export(self) -> Bundle:
        """Assemble the bundle. Raises BundleError only when the zip cannot be written."""
        snapshot = self.store.export_snapshot()
        timestamp = self.clock()

        files: dict[str, bytes] = {}
        warnings: list[str] = []
        written: list[str] = []

        for name, section in self.sections:
            result = await self._run_section(name, section, snapshot)
            if isinstance(result, Ok):
                files.update(result.value.files)
                warnings.extend(result.value.warnings)
                if result.value.files:
                    written.append(name)
            else:
                message = f"{name.capitalize()} section skipped: {failure_message(result)}"
                logger.warning(message)
                warnings.append(message)

        data = await asyncio.to_thread(self._write_archive, files)
        filename = f"{slugify(snapshot.ref_name or 'creative-spec') or 'creative-spec'}-bundle-{timestamp}.zip"
        logger.info(f"Bundle {filename} assembled: {len(files)} files, {len(warnings)} warnings")
        return Bundle(data=data, filename=filename, warnings=warnings, sections=written)

    async def _run_section(self, name: str, section: Section, snapshot: ExportSnapshot) -> Result[SectionOutput]:
        try:
            return await section(snapshot)
        except Exception as e:
            logger.exception(f"Export section {name} failed")
            return Rejected(str(e) or type(e).__name__)

    def _write_archive(self, files: dict[str, bytes]) -> bytes:
        buffer = BytesIO()
        try:
            with zipfile.ZipFile(
                buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=self.compression_level
            ) as zf:
                for path, content in files.items():
                    zf.writestr(path, content)
        except (OSError, ValueError, zipfile.LargeZipFile) as e:
            raise BundleError(f"Failed to finalize bundle: {e}")
        return buffer.getvalue()

    # ===== Sections =====

    async def json_section(self, snapshot: ExportSnapshot) -> Result[SectionOutput]:
        try:
            document = json.dumps(serialize_export_snapshot(snapshot), indent=2)
        except (TypeError, ValueError) as e:
            return Rejected(f"Snapshot is not JSON serializable: {e}")
        return Ok(SectionOutput({BUNDLE_JSON_NAME: document.encode("utf-8")}))

    async def spreadsheet_section(self, snapshot: ExportSnapshot) -> Result[SectionOutput]:
        try:
            content = await asyncio.to_thread(render_spreadsheet, snapshot)
        except (IllegalCharacterError, ValueError, TypeError) as e:
            return Rejected(f"Spreadsheet could not be rendered: {e}")
        return Ok(SectionOutput({spreadsheet_filename(snapshot.ref_name): content}))

    async def text_section(self, snapshot: ExportSnapshot) -> Result[SectionOutput]:
        return Ok(SectionOutput({BUNDLE_TEXT_NAME: render_text(snapshot).encode("utf-8")}))

    async def preview_section(self, snapshot: ExportSnapshot) -> Result[SectionOutput]:
        if self.preview_surface is None:
            return Rejected("Preview not ready to export")

        with self.store.expanded_preview():
            await asyncio.sleep(self.settle_seconds)
            try:
                png = await self.preview_surface.capture("png")
                jpg = await self.preview_surface.capture("jpeg")
            except PreviewCaptureError as e:
                return Rejected(f"Preview capture failed: {e}")

        return Ok(SectionOutput({BUNDLE_PREVIEW_PNG: png, BUNDLE_PREVIEW_JPG: jpg}))

    async def creatives_section(self, snapshot: ExportSnapshot) -> Result[SectionOutput]:
        output = SectionOutput()
        square = snapshot.assets.get("square")
        vertical = snapshot.assets.get("vertical")

        if square:
            await self._add_creative(output, "Square", square, f"square-1080x1080-{square.name}", [SQUARE_CANONICAL])
        if vertical:
            await self._add_creative(
                output, "Vertical", vertical, f"vertical-1080x1920-{vertical.name}", [VERTICAL_CANONICAL]
            )
        if not square and not vertical and snapshot.primary_asset:
            primary = snapshot.primary_asset
            await self._add_creative(output, "Creative", primary, primary.name, [SQUARE_CANONICAL, VERTICAL_CANONICAL])

        return Ok(output)

    async def _add_creative(
        self,
        output: SectionOutput,
        label: str,
        asset: AssetReference,
        original_name: str,
        canonical_stems: list[str],
    ) -> None:
        try:
            content = await self.resolve_asset_bytes(asset)
        except AssetResolutionError as e:
            message = f"{label} creative file skipped: {e}"
            logger.warning(message)
            output.warnings.append(message)
            return

        output.files[f"creatives/original/{original_name}"] = content
        if asset.extension in CANONICAL_EXTENSIONS:
            for stem in canonical_stems:
                output.files[f"{stem}.{asset.extension}"] = content

    async def resolve_asset_bytes(self, asset: AssetReference) -> bytes:
        """Remote pointer first; the inline payload only when the pointer is absent or fails."""
        if asset.url:
            result = await self.gateway.fetch_asset(asset.url)
            if isinstance(result, Ok):
                return result.value
            logger.warning(f"Fetching {asset.name} from {asset.url} failed, using inline payload: {failure_message(result)}")

        if not asset.inline_data:
            raise AssetResolutionError(f"No image data available for {asset.name}")
        try:
            return decode_payload(asset.inline_data)
        except CodecError as e:
            raise AssetResolutionError(f"Inline payload for {asset.name} is unusable: {e}")

    # ===== Single preview export =====

    async def export_preview_image(self, fmt: str = "png") -> bytes:
        """Capture the preview alone, with the same expanded-text override as the bundle."""
        if self.preview_surface is None:
            raise PreviewCaptureError("Preview not ready to export")
        with self.store.expanded_preview():
            await asyncio.sleep(self.settle_seconds)
            return await self.preview_surface.capture(fmt)
