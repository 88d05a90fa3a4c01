"""Identity verification with a URL-derived fallback when the service is down."""

import logging
from urllib.parse import parse_qs, quote, urlsplit

from ..clients.gateway import CreativeGateway
from ..config import AVATAR_URL_TEMPLATE, IDENTITY_FALLBACK_METHOD
from ..models import IdentityRecord, IdentityVerification, Ok, Unreachable, VerificationStatus
from ..utils import ensure_https, humanize_slug

logger = logging.getLogger(__name__)

EMPTY_URL_ERROR = "Please provide an advertiser page URL"


def derive_identity_fallback(page_url: str) -> IdentityRecord | None:
    """
    Synthesise an identity record from the page URL alone.

    The first path segment is the page slug; "profile.php?id=<id>" uses the id.
    Returns None when no slug can be found (e.g. a bare domain).
    """
    if not page_url or not page_url.strip():
        return None

    normalized = ensure_https(page_url.strip())
    try:
        parsed = urlsplit(normalized)
    except ValueError as e:
        logger.warning(f"Unable to parse page URL for fallback: {e}")
        return None

    segments = [s for s in parsed.path.split("/") if s]
    if not segments:
        return None

    if segments[0] == "profile.php":
        ids = parse_qs(parsed.query).get("id")
        slug = ids[0].strip() if ids else ""
    else:
        slug = segments[0]
    if not slug:
        return None

    return IdentityRecord(
        page_id=slug,
        name=humanize_slug(slug) or slug,
        profile_picture=AVATAR_URL_TEMPLATE.format(slug=quote(slug, safe="")),
        url=normalized,
        method=IDENTITY_FALLBACK_METHOD,
    )


class IdentityVerifier:
    """Run one verification attempt and return its terminal state."""

    def __init__(self, gateway: CreativeGateway):
        self.gateway = gateway

    async def verify(self, page_url: str, context_url: str | None = None) -> IdentityVerification:
        """
        Verify a normalised page URL.

        Returns:
            VERIFIED with the service's record, DEGRADED with a synthetic record
            when the service is unreachable, or FAILED with the reason.
        """
        if not page_url:
            return IdentityVerification(status=VerificationStatus.FAILED, error=EMPTY_URL_ERROR)

        result = await self.gateway.verify_identity(page_url, context_url)

        if isinstance(result, Ok):
            record = result.value or IdentityRecord(url=page_url)
            if result.method and not record.method:
                record.method = result.method
            return IdentityVerification(status=VerificationStatus.VERIFIED, data=record)

        if isinstance(result, Unreachable):
            fallback = derive_identity_fallback(page_url)
            if fallback:
                logger.warning(f"Verification service unreachable, using URL fallback for {page_url}")
                return IdentityVerification(status=VerificationStatus.DEGRADED, data=fallback)
            logger.error(f"Verification service unreachable and no fallback for {page_url}")
            return IdentityVerification(status=VerificationStatus.FAILED, error=result.detail)

        logger.error(f"Identity verification rejected for {page_url}: {result.reason}")
        return IdentityVerification(status=VerificationStatus.FAILED, error=result.reason)
