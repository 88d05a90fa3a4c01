"""Asset codec - inline (base64) encoding of raw image files and back."""

import base64
import binascii
import logging
import re
from dataclasses import dataclass
from pathlib import PurePosixPath

from .config import ACCEPTED_MIME_TYPES, DEFAULT_MIME_TYPE

logger = logging.getLogger(__name__)

EXTENSION_MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
}


class CodecError(Exception):
    """Inline payload could not be produced or decoded."""

    pass


@dataclass
class RawFile:
    """A file handed to the ingestion pipeline."""

    name: str
    data: bytes
    content_type: str | None = None  # As reported by the caller; not trusted

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class EncodedAsset:
    """Transport-safe form of a file."""

    mime_type: str
    data: str  # base64, no data-URL prefix, no whitespace


def sniff_mime_type(data: bytes) -> str | None:
    """Detect an image type from its leading bytes."""
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if data.startswith(b"GIF87a") or data.startswith(b"GIF89a"):
        return "image/gif"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return None


def normalize_mime_type(declared: str | None, filename: str = "", data: bytes = b"") -> str:
    """
    Resolve the MIME type to one of the accepted image types.

    Signature bytes win, then the file extension, then the declared type
    (with "image/jpg" corrected). Unknown types fall back to JPEG.
    """
    sniffed = sniff_mime_type(data) if data else None
    if sniffed:
        return sniffed

    ext = PurePosixPath(filename).suffix.lower().lstrip(".")
    if ext in EXTENSION_MIME_TYPES:
        return EXTENSION_MIME_TYPES[ext]

    normalized = (declared or "").lower().strip()
    if normalized == "image/jpg":
        return "image/jpeg"
    if normalized in ACCEPTED_MIME_TYPES:
        return normalized

    logger.warning(f"Unknown image type {declared!r} for {filename!r}, defaulting to {DEFAULT_MIME_TYPE}")
    return DEFAULT_MIME_TYPE


def clean_base64(payload: str) -> str:
    """Strip a data-URL prefix and any whitespace from a base64 payload."""
    cleaned = payload.strip()
    if "," in cleaned:
        cleaned = cleaned.rsplit(",", 1)[-1]
    return re.sub(r"\s", "", cleaned)


def encode_file(file: RawFile) -> EncodedAsset:
    """Encode a raw file to its inline form with a normalised MIME type."""
    if not file.data:
        raise CodecError(f"File {file.name!r} is empty")
    return EncodedAsset(
        mime_type=normalize_mime_type(file.content_type, file.name, file.data),
        data=base64.b64encode(file.data).decode("ascii"),
    )


def decode_payload(payload: str) -> bytes:
    """Decode an inline payload (bare base64 or data URL) back to bytes."""
    cleaned = clean_base64(payload)
    if not cleaned:
        raise CodecError("Inline payload is empty")
    try:
        return base64.b64decode(cleaned, validate=True)
    except (binascii.Error, ValueError) as e:
        raise CodecError(f"Invalid inline payload: {e}")


def to_data_url(asset: EncodedAsset) -> str:
    return f"data:{asset.mime_type};base64,{asset.data}"
