"""Remote gateway - the creative API behind typed Ok / Unreachable / Rejected results."""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any

import requests

from ..codec import EncodedAsset
from ..config import (
    CREATIVE_API_MAX_RETRIES,
    CREATIVE_API_TIMEOUT,
    CREATIVE_API_URL,
    CREATIVE_UPLOAD_TIMEOUT,
    ENDPOINT_GENERATE_COPY,
    ENDPOINT_PREVIEW,
    ENDPOINT_SAVE_DRAFT,
    ENDPOINT_UPLOAD_ASSET,
    ENDPOINT_VERIFY_IDENTITY,
)
from ..models import IdentityRecord, Ok, Rejected, Result, Unreachable
from ..serializers import deserialize_identity_record

logger = logging.getLogger(__name__)


@dataclass
class GeneratedCopy:
    """Ad copy fields produced by the generation service."""

    ad_name: str
    primary_text: str
    headline: str
    description: str
    display_link: str
    call_to_action: str
    reasoning: str | None = None


@dataclass
class SavedDraft:
    short_id: str
    public_url: str


class CreativeGateway:
    """Client for the creative API (identity, copy, uploads, saved drafts)."""

    def __init__(
        self,
        base_url: str = CREATIVE_API_URL,
        timeout: float = CREATIVE_API_TIMEOUT,
        upload_timeout: float = CREATIVE_UPLOAD_TIMEOUT,
        max_retries: int = CREATIVE_API_MAX_RETRIES,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.upload_timeout = upload_timeout
        self.max_retries = max_retries

    def _get_headers(self) -> dict:
        return {"Content-Type": "application/json"}

    def _resolve(self, endpoint: str) -> str:
        if endpoint.startswith("http"):
            return endpoint
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def _request_with_retry(
        self,
        method: str,
        url: str,
        json: dict | None = None,
        params: dict | None = None,
        timeout: float | None = None,
    ) -> requests.Response:
        """Make request with exponential backoff on 429 errors."""
        response = None
        for attempt in range(self.max_retries):
            if method == "POST":
                response = requests.post(
                    url, json=json, headers=self._get_headers(), timeout=timeout or self.timeout
                )
            else:
                response = requests.get(url, params=params, timeout=timeout or self.timeout)

            if response.status_code == 429:
                wait_time = 2 ** attempt
                time.sleep(wait_time)
                continue

            return response

        return response

    def _call(
        self,
        method: str,
        endpoint: str,
        payload: dict | None = None,
        params: dict | None = None,
        timeout: float | None = None,
    ) -> Result[Any]:
        """Perform one JSON call and classify the outcome."""
        url = self._resolve(endpoint)
        try:
            response = self._request_with_retry(method, url, json=payload, params=params, timeout=timeout)
        except (requests.ConnectionError, requests.Timeout) as e:
            logger.warning(f"API network error for {url}: {e}")
            return Unreachable(f"Unable to reach API server ({self.base_url})")
        except requests.RequestException as e:
            return Rejected(str(e))

        text = response.text
        try:
            data = response.json() if text else None
        except ValueError:
            logger.error(f"Failed to parse API response from {url}: {text[:200]!r}")
            return Rejected("Invalid response from server", response.status_code)
        if data is not None and not isinstance(data, dict):
            logger.error(f"API response from {url} is not a JSON object: {text[:200]!r}")
            return Rejected("Invalid response from server", response.status_code, data)

        error = data.get("error") if isinstance(data, dict) else None
        if not isinstance(error, str):
            error = None

        if not response.ok or error:
            return Rejected(error or response.reason or f"HTTP {response.status_code}", response.status_code, data)
        if isinstance(data, dict) and data.get("success") is False:
            return Rejected("Request was not successful", response.status_code, data)

        method_tag = data.get("method") if isinstance(data, dict) else None
        return Ok(data, method=method_tag)

    # ===== Sync calls =====

    def verify_identity_sync(self, url: str, context_url: str | None = None) -> Result[IdentityRecord | None]:
        result = self._call("POST", ENDPOINT_VERIFY_IDENTITY, {"facebookUrl": url, "websiteUrl": context_url or None})
        if not isinstance(result, Ok):
            return result

        body = result.value or {}
        warnings = body.get("errors")
        if isinstance(warnings, list) and warnings:
            logger.warning(f"Identity verification warnings for {url}: {warnings}")
        return Ok(deserialize_identity_record(body.get("data")), method=result.method)

    def generate_copy_sync(self, payload: dict) -> Result[GeneratedCopy]:
        result = self._call("POST", ENDPOINT_GENERATE_COPY, payload)
        if not isinstance(result, Ok):
            return result

        data = (result.value or {}).get("data")
        if not isinstance(data, dict):
            return Rejected("Generation response carried no copy", payload=result.value)
        return Ok(
            GeneratedCopy(
                ad_name=data.get("adName") or "",
                primary_text=data.get("postText") or "",
                headline=data.get("headline") or "",
                description=data.get("linkDescription") or "",
                display_link=data.get("displayLink") or "",
                call_to_action=data.get("cta") or "",
                reasoning=data.get("reasoning"),
            ),
            method=result.method,
        )

    def upload_asset_sync(self, asset: EncodedAsset, filename: str) -> Result[str]:
        result = self._call(
            "POST",
            ENDPOINT_UPLOAD_ASSET,
            {"image": asset.data, "filename": filename, "contentType": asset.mime_type},
            timeout=self.upload_timeout,
        )
        if not isinstance(result, Ok):
            return result

        url = (result.value or {}).get("url")
        if not url:
            return Rejected("Upload response carried no URL", payload=result.value)
        return Ok(url)

    def save_draft_sync(self, payload: dict) -> Result[SavedDraft]:
        result = self._call("POST", ENDPOINT_SAVE_DRAFT, payload)
        if not isinstance(result, Ok):
            return result

        data = (result.value or {}).get("data") or {}
        short_id = data.get("shortId")
        urls = data.get("urls") or {}
        public_url = urls.get("byUsername") or urls.get("byPageId")
        if not short_id or not public_url:
            return Rejected("Save response carried no share link", payload=result.value)
        return Ok(SavedDraft(short_id=short_id, public_url=public_url))

    def load_draft_sync(self, advertiser: str, ad_id: str) -> Result[dict]:
        result = self._call("GET", f"{ENDPOINT_PREVIEW}/{advertiser}", params={"adId": ad_id})
        if not isinstance(result, Ok):
            return result

        data = (result.value or {}).get("data")
        if not isinstance(data, dict) or not isinstance(data.get("ad"), dict):
            return Rejected("Failed to load preview", payload=result.value)
        return Ok(data)

    def fetch_asset_sync(self, url: str) -> Result[bytes]:
        """Download raw bytes behind a remote pointer."""
        try:
            response = requests.get(url, timeout=self.upload_timeout)
        except (requests.ConnectionError, requests.Timeout) as e:
            return Unreachable(f"Unable to fetch {url}: {e}")
        except requests.RequestException as e:
            return Rejected(str(e))

        if not response.ok:
            return Rejected(f"HTTP {response.status_code} fetching {url}", response.status_code)
        if not response.content:
            return Rejected(f"Empty body fetching {url}", response.status_code)
        return Ok(response.content)

    # ===== Async boundary =====

    async def verify_identity(self, url: str, context_url: str | None = None) -> Result[IdentityRecord | None]:
        return await asyncio.to_thread(self.verify_identity_sync, url, context_url)

    async def generate_copy(self, payload: dict) -> Result[GeneratedCopy]:
        return await asyncio.to_thread(self.generate_copy_sync, payload)

    async def upload_asset(self, asset: EncodedAsset, filename: str) -> Result[str]:
        return await asyncio.to_thread(self.upload_asset_sync, asset, filename)

    async def save_draft(self, payload: dict) -> Result[SavedDraft]:
        return await asyncio.to_thread(self.save_draft_sync, payload)

    async def load_draft(self, advertiser: str, ad_id: str) -> Result[dict]:
        return await asyncio.to_thread(self.load_draft_sync, advertiser, ad_id)

    async def fetch_asset(self, url: str) -> Result[bytes]:
        return await asyncio.to_thread(self.fetch_asset_sync, url)
