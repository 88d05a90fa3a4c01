"""Command-line handler: build an export bundle from a draft document.

Usage:
    python -m creative_spec.handlers.bundle <draft.json> [image ...] [--out DIR]

The draft document holds camelCase `brief`, `adCopy`, `preview` and
`identity` sections, either at the top level or under `state` (the local
autosave record layout).
"""

import asyncio
import json
import logging
import sys
from pathlib import Path

from ..app import create_app
from ..codec import RawFile
from ..config import LOG_LEVEL
from ..serializers import deserialize_ad_copy, deserialize_brief, deserialize_identity, deserialize_preview
from ..services import BundleError

logger = logging.getLogger(__name__)

USAGE = "Usage: python -m creative_spec.handlers.bundle <draft.json> [image ...] [--out DIR]"


def parse_args(argv: list[str]) -> tuple[Path, list[Path], Path]:
    """Split argv into (draft path, image paths, output directory)."""
    args = list(argv)
    out_dir = Path(".")
    if "--out" in args:
        index = args.index("--out")
        if index + 1 >= len(args):
            raise ValueError("--out needs a directory")
        out_dir = Path(args[index + 1])
        del args[index:index + 2]

    if not args:
        raise ValueError("A draft document is required")
    return Path(args[0]), [Path(a) for a in args[1:]], out_dir


def load_document(path: Path) -> dict:
    document = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(document, dict):
        raise ValueError(f"{path} does not contain a JSON object")
    if isinstance(document.get("state"), dict):
        return document["state"]
    return document


async def run(draft_path: Path, images: list[Path], out_dir: Path) -> Path:
    app = create_app()
    store = app.store

    document = load_document(draft_path)
    store.hydrate(
        deserialize_brief(document.get("brief")),
        deserialize_ad_copy(document.get("adCopy")),
        deserialize_preview(document.get("preview")),
        deserialize_identity(document.get("identity")),
    )
    print(f"Loaded draft: {store.draft.ad_copy.ad_name or '(untitled)'}", flush=True)

    for image in images:
        asset = await store.ingest_asset(RawFile(name=image.name, data=image.read_bytes()))
        if asset:
            print(f"  + {asset.name} ({asset.aspect or 'unclassified'})", flush=True)
        else:
            print(f"  ! {image.name} could not be ingested", flush=True)

    bundle = await app.exporter.export()

    out_dir.mkdir(parents=True, exist_ok=True)
    target = out_dir / bundle.filename
    target.write_bytes(bundle.data)

    print(f"\nBundle written: {target} ({bundle.size} bytes)", flush=True)
    print(f"Sections: {', '.join(bundle.sections)}", flush=True)
    for warning in bundle.warnings:
        print(f"WARNING: {warning}", flush=True)
    return target


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        draft_path, images, out_dir = parse_args(sys.argv[1:] if argv is None else argv)
    except ValueError as e:
        print(f"Error: {e}")
        print(USAGE)
        return 2

    try:
        asyncio.run(run(draft_path, images, out_dir))
    except (OSError, ValueError) as e:
        print(f"Error: {e}")
        return 1
    except BundleError as e:
        logger.error(f"Export failed: {e}")
        print(f"Error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
