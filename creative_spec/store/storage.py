"""Local storage - a directory of JSON documents under a byte quota."""

import json
import logging
import re
from pathlib import Path
from typing import Any

from ..config import STORAGE_DIR, STORAGE_QUOTA_BYTES

logger = logging.getLogger(__name__)


class StorageQuotaExceededError(Exception):
    """Write would push storage usage past its quota."""

    def __init__(self, key: str, required: int, quota: int):
        self.key = key
        self.required = required
        self.quota = quota
        super().__init__(f"Storing {key!r} needs {required} bytes, quota is {quota}")


class LocalStorage:
    """Key/value store; one JSON file per key, all keys share one quota."""

    def __init__(self, directory: str | Path = STORAGE_DIR, quota_bytes: int = STORAGE_QUOTA_BYTES):
        self.directory = Path(directory)
        self.quota_bytes = quota_bytes

    def _path(self, key: str) -> Path:
        safe = re.sub(r"[^A-Za-z0-9_.-]", "_", key)
        return self.directory / f"{safe}.json"

    def usage(self) -> int:
        """Total bytes currently stored."""
        if not self.directory.exists():
            return 0
        return sum(p.stat().st_size for p in self.directory.glob("*.json"))

    def read(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def write(self, key: str, value: str) -> None:
        """
        Store a value, refusing writes that would exceed the quota.

        The new value is written beside the old one before replacing it, so
        both count against the quota during the write.
        """
        path = self._path(key)
        encoded = value.encode("utf-8")
        required = self.usage() + len(encoded)
        if required > self.quota_bytes:
            raise StorageQuotaExceededError(key, required, self.quota_bytes)

        self.directory.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        tmp.write_bytes(encoded)
        tmp.replace(path)

    def replace(self, key: str, value: str) -> None:
        """
        Store a value in place of the existing one, dropping the old copy first.

        The quota check leaves out the old value. When the new value does not
        fit even then, StorageQuotaExceededError is raised and the old value
        stays in place.
        """
        path = self._path(key)
        encoded = value.encode("utf-8")
        existing = path.stat().st_size if path.exists() else 0
        required = self.usage() - existing + len(encoded)
        if required > self.quota_bytes:
            raise StorageQuotaExceededError(key, required, self.quota_bytes)

        self.remove(key)
        self.write(key, value)

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def read_json(self, key: str) -> Any:
        raw = self.read(key)
        return json.loads(raw) if raw else None

    def write_json(self, key: str, value: Any) -> None:
        self.write(key, json.dumps(value, separators=(",", ":")))

    def replace_json(self, key: str, value: Any) -> None:
        self.replace(key, json.dumps(value, separators=(",", ":")))
