"""Creative set detection - folders of square/vertical images inside a zip archive."""

import logging
import re
import zipfile
from dataclasses import dataclass
from io import BytesIO
from pathlib import PurePosixPath

from ..codec import EXTENSION_MIME_TYPES, RawFile
from ..utils import classify_aspect
from .assets import read_dimensions

logger = logging.getLogger(__name__)

IMAGE_PATTERN = re.compile(r"\.(png|jpe?g|webp)$", re.IGNORECASE)


@dataclass
class CreativeSet:
    """One folder's worth of creatives."""

    name: str
    square: RawFile | None = None
    vertical: RawFile | None = None


def extract_set_name(file_path: str) -> str | None:
    """
    Folder that names the set.

    "Social Set A/image.png" -> "Social Set A"
    "Main/Social/Set B/image.png" -> "Set B" (folder after "Social")
    Files at the archive root have no set.
    """
    parts = [p for p in file_path.split("/") if p][:-1]
    if not parts:
        return None

    lowered = [p.lower() for p in parts]
    if "social" in lowered:
        index = lowered.index("social")
        if index < len(parts) - 1:
            return parts[index + 1]
    return parts[-1]


def _should_skip(filename: str) -> bool:
    if not IMAGE_PATTERN.search(filename):
        return True
    return "__MACOSX" in filename or PurePosixPath(filename).name.startswith("._")


def parse_creative_sets(archive: bytes) -> list[CreativeSet]:
    """
    Detect creative sets in a zip archive.

    Only square and vertical images are kept (first of each per set);
    "banner" folders are ignored. Raises zipfile.BadZipFile for non-archives.
    """
    sets: dict[str, CreativeSet] = {}

    with zipfile.ZipFile(BytesIO(archive)) as zf:
        for info in zf.infolist():
            filename = info.filename
            if info.is_dir() or _should_skip(filename):
                continue

            set_name = extract_set_name(filename)
            if not set_name or "banner" in set_name.lower():
                continue

            data = zf.read(info)
            try:
                width, height = read_dimensions(data)
            except ValueError as e:
                logger.warning(f"Failed to process image {filename}: {e}")
                continue

            aspect = classify_aspect(width, height)
            if aspect not in ("square", "vertical"):
                continue

            ext = PurePosixPath(filename).suffix.lower().lstrip(".")
            file = RawFile(
                name=PurePosixPath(filename).name,
                data=data,
                content_type=EXTENSION_MIME_TYPES.get(ext),
            )
            creative_set = sets.setdefault(set_name, CreativeSet(name=set_name))
            if aspect == "square" and creative_set.square is None:
                creative_set.square = file
            elif aspect == "vertical" and creative_set.vertical is None:
                creative_set.vertical = file

    return sorted(sets.values(), key=lambda s: s.name.lower())
