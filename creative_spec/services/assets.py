"""Asset ingestion service - raw file to AssetReference with upload fallback."""

import asyncio
import logging
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from ..clients.gateway import CreativeGateway
from ..codec import RawFile, encode_file
from ..models import AssetReference, Ok, failure_message
from ..utils import classify_aspect

logger = logging.getLogger(__name__)


def read_dimensions(data: bytes) -> tuple[int, int]:
    """Read pixel dimensions from image bytes. Raises ValueError on unreadable images."""
    try:
        with Image.open(BytesIO(data)) as img:
            return img.size
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as e:
        raise ValueError(f"Unreadable image: {e}")


class AssetIngestionService:
    """Turn uploaded files into asset references."""

    def __init__(self, gateway: CreativeGateway):
        self.gateway = gateway

    async def ingest(self, file: RawFile) -> AssetReference:
        """
        Ingest one file.

        1. Encode to inline base64 and normalise the MIME type
        2. Read pixel dimensions and classify the aspect ratio
        3. Upload the payload; keep the remote pointer on success
        4. Return a reference that always keeps the inline payload

        A corrupt image only loses its dimensions and classification; a failed
        upload only loses the remote pointer.

        Raises:
            CodecError: the file is empty and has nothing to encode.
        """
        encoded = encode_file(file)

        width = height = None
        try:
            width, height = await asyncio.to_thread(read_dimensions, file.data)
        except ValueError as e:
            logger.error(f"Failed to detect dimensions for {file.name}: {e}")

        url = None
        result = await self.gateway.upload_asset(encoded, file.name)
        if isinstance(result, Ok):
            url = result.value
            logger.info(f"Asset uploaded: {url}")
        else:
            logger.warning(f"Upload failed for {file.name}, using inline fallback: {failure_message(result)}")

        return AssetReference(
            name=file.name,
            size=file.size,
            mime_type=encoded.mime_type,
            width=width,
            height=height,
            aspect=classify_aspect(width, height),
            url=url,
            inline_data=encoded.data,
        )
