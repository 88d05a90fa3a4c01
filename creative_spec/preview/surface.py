"""Preview surfaces - raster captures of the ad as it would appear in a feed."""

import asyncio
import logging
import textwrap
from abc import ABC, abstractmethod
from dataclasses import dataclass
from io import BytesIO

from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError

from ..codec import CodecError, decode_payload

logger = logging.getLogger(__name__)

CARD_WIDTH = 600
PADDING = 16
LINE_HEIGHT = 16
WRAP_CHARS = 90
TRUNCATE_CHARS = 125
SEE_MORE = "... See more"
PLACEHOLDER_HEIGHT = 314

BACKGROUND = (255, 255, 255)
TEXT_COLOR = (5, 5, 5)
MUTED_COLOR = (101, 103, 107)
PANEL_COLOR = (240, 242, 245)
PLACEHOLDER_COLOR = (216, 218, 223)
BUTTON_COLOR = (228, 230, 235)

FORMATS = {"png": "PNG", "jpeg": "JPEG", "jpg": "JPEG"}


class PreviewCaptureError(Exception):
    """The surface could not produce an image."""
    pass


class PreviewSurface(ABC):
    """Anything the export can screenshot."""

    @abstractmethod
    async def capture(self, fmt: str) -> bytes:
        """Return the current preview encoded as `fmt` ("png" or "jpeg")."""
        pass


@dataclass
class CardContent:
    """Values read from the draft at capture time."""

    page_name: str
    primary_text: str
    headline: str
    description: str
    display_link: str
    call_to_action: str
    image_payload: str | None
    expanded: bool


def truncate_text(text: str, limit: int = TRUNCATE_CHARS) -> str:
    """Feed-style truncation: cut at a word boundary and add the "See more" marker."""
    if len(text) <= limit:
        return text
    cut = text[:limit].rsplit(" ", 1)[0] or text[:limit]
    return cut.rstrip() + SEE_MORE


class CardPreviewSurface(PreviewSurface):
    """Render a feed card from the draft: page, text, image, headline and CTA."""

    def __init__(self, store, width: int = CARD_WIDTH):
        self.store = store
        self.width = width
        self.font = ImageFont.load_default()

    def read_content(self) -> CardContent:
        draft = self.store.draft
        identity = draft.identity.data
        asset = draft.brief.primary_asset
        return CardContent(
            page_name=(identity.name if identity and identity.name else "Your Page"),
            primary_text=draft.ad_copy.primary_text,
            headline=draft.ad_copy.headline,
            description=draft.ad_copy.description,
            display_link=draft.ad_copy.display_link,
            call_to_action=draft.ad_copy.call_to_action,
            image_payload=asset.inline_data if asset else None,
            expanded=draft.preview.force_expand_text,
        )

    async def capture(self, fmt: str) -> bytes:
        pil_format = FORMATS.get(fmt.lower())
        if not pil_format:
            raise PreviewCaptureError(f"Unsupported capture format: {fmt}")

        # Read on the loop thread, draw in a worker
        content = self.read_content()
        return await asyncio.to_thread(self.render, content, pil_format)

    def render(self, content: CardContent, pil_format: str = "PNG") -> bytes:
        text = content.primary_text if content.expanded else truncate_text(content.primary_text)
        text_lines = self._wrap(text)
        creative = self._load_creative(content.image_payload)
        image_height = creative.height if creative else PLACEHOLDER_HEIGHT
        footer_lines = [content.display_link.upper(), content.headline, content.description]
        footer_lines = [line for line in footer_lines if line]

        height = (
            PADDING * 2 + LINE_HEIGHT                     # page header
            + PADDING + LINE_HEIGHT * len(text_lines)     # primary text
            + PADDING + image_height                      # creative
            + PADDING * 2 + LINE_HEIGHT * max(len(footer_lines), 1)
        )
        card = Image.new("RGB", (self.width, height), BACKGROUND)
        draw = ImageDraw.Draw(card)

        y = PADDING
        draw.text((PADDING, y), content.page_name, fill=TEXT_COLOR, font=self.font)
        draw.text((PADDING, y + LINE_HEIGHT // 2 + 4), "Sponsored", fill=MUTED_COLOR, font=self.font)
        y += LINE_HEIGHT + PADDING * 2

        for line in text_lines:
            draw.text((PADDING, y), line, fill=TEXT_COLOR, font=self.font)
            y += LINE_HEIGHT
        y += PADDING

        if creative:
            card.paste(creative, (0, y))
        else:
            draw.rectangle((0, y, self.width, y + image_height), fill=PLACEHOLDER_COLOR)
        y += image_height

        footer_top = y
        draw.rectangle((0, footer_top, self.width, height), fill=PANEL_COLOR)
        y += PADDING
        for line in footer_lines:
            draw.text((PADDING, y), line, fill=TEXT_COLOR, font=self.font)
            y += LINE_HEIGHT

        if content.call_to_action:
            button = (self.width - PADDING - 110, footer_top + PADDING, self.width - PADDING, footer_top + PADDING + 28)
            draw.rectangle(button, fill=BUTTON_COLOR)
            draw.text((button[0] + 10, button[1] + 8), content.call_to_action, fill=TEXT_COLOR, font=self.font)

        output = BytesIO()
        card.save(output, format=pil_format)
        return output.getvalue()

    def _wrap(self, text: str) -> list[str]:
        lines = []
        for paragraph in (text or "").splitlines() or [""]:
            lines.extend(textwrap.wrap(paragraph, WRAP_CHARS) or [""])
        return lines

    def _load_creative(self, payload: str | None) -> Image.Image | None:
        """Decode the inline creative and scale it to the card width."""
        if not payload:
            return None
        try:
            img = Image.open(BytesIO(decode_payload(payload)))
            img.load()
        except (CodecError, UnidentifiedImageError, OSError) as e:
            logger.warning(f"Preview could not draw the creative: {e}")
            return None

        img = img.convert("RGB")
        scaled_height = max(1, round(img.height * self.width / img.width))
        return img.resize((self.width, scaled_height), Image.LANCZOS)
