"""Shared fixtures for creative spec tests."""

import os
import sys
from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image

ROOT_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT_DIR))

os.environ.setdefault("CREATIVE_API_URL", "http://api.test")
os.environ.setdefault("CREATIVE_API_MAX_RETRIES", "1")

from creative_spec.codec import RawFile
from creative_spec.models import Ok, Unreachable
from creative_spec.store import DraftStore, LocalStorage, SnapshotRepository


def make_image(width: int, height: int, fmt: str = "PNG", color=(200, 30, 30)) -> bytes:
    """Encode a solid-color image."""
    output = BytesIO()
    Image.new("RGB", (width, height), color).save(output, format=fmt)
    return output.getvalue()


class FakeGateway:
    """Gateway double: canned results per call, records what it was asked."""

    def __init__(self):
        self.verify_result = Unreachable()
        self.generate_result = Unreachable()
        self.upload_result = Unreachable()
        self.save_result = Unreachable()
        self.load_result = Unreachable()
        self.fetch_results: dict = {}
        self.calls: list[tuple] = []

    async def verify_identity(self, url, context_url=None):
        self.calls.append(("verify_identity", url, context_url))
        return self.verify_result

    async def generate_copy(self, payload):
        self.calls.append(("generate_copy", payload))
        return self.generate_result

    async def upload_asset(self, asset, filename):
        self.calls.append(("upload_asset", filename))
        return self.upload_result

    async def save_draft(self, payload):
        self.calls.append(("save_draft", payload))
        return self.save_result

    async def load_draft(self, advertiser, ad_id):
        self.calls.append(("load_draft", advertiser, ad_id))
        return self.load_result

    async def fetch_asset(self, url):
        self.calls.append(("fetch_asset", url))
        return self.fetch_results.get(url, Unreachable(f"Unable to fetch {url}"))

    def called(self, name: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == name]


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(tmp_path / "storage", quota_bytes=1024 * 1024)


@pytest.fixture
def snapshots(storage):
    return SnapshotRepository(storage)


@pytest.fixture
def store(gateway, snapshots):
    return DraftStore(gateway, snapshots=snapshots, clock=lambda: 1_700_000_000_000)


@pytest.fixture
def square_png():
    return RawFile(name="square.png", data=make_image(1080, 1080), content_type="image/png")


@pytest.fixture
def vertical_jpg():
    return RawFile(name="story.jpg", data=make_image(1080, 1920, "JPEG"), content_type="image/jpg")


@pytest.fixture
def uploaded(gateway):
    """Make uploads succeed with a predictable URL."""
    gateway.upload_result = Ok("https://cdn.test/uploads/asset.png")
    return gateway
