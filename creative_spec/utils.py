import re
import time
import unicodedata
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from .config import ASPECT_TOLERANCE, SQUARE_RATIO, VERTICAL_RATIO


def slugify(text: str) -> str:
    """Convert text to a URL slug: lowercase words joined by hyphens.

    Example: "Fall Sale!" -> "fall-sale"
    """
    if not text:
        return ""
    normalized = unicodedata.normalize("NFKD", text)
    ascii_text = normalized.encode("ascii", "ignore").decode("ascii")
    return re.sub(r"[^a-z0-9]+", "-", ascii_text.lower()).strip("-")


def ensure_https(url: str) -> str:
    """Prefix https:// when the URL carries no scheme."""
    if not url:
        return url
    if url.lower().startswith(("http://", "https://")):
        return url
    return f"https://{url}"


def with_utm_params(url: str, params: dict[str, str | None]) -> str:
    """
    Inject or overwrite query parameters on a URL.

    Existing parameters keep their position; new ones are appended. A value of
    None (or "") removes the parameter. Returns "" when the URL cannot be parsed.
    """
    if not url:
        return ""
    try:
        url = url.strip()
        parts = urlsplit(url)
        if not parts.scheme or not parts.netloc:
            parts = urlsplit(ensure_https(url))
        _ = parts.port  # raises ValueError on a malformed port
    except ValueError:
        return ""
    if not parts.hostname:
        return ""

    query = parse_qsl(parts.query, keep_blank_values=True)
    pending = dict(params)
    merged = []
    for key, value in query:
        if key in pending:
            replacement = pending.pop(key)
            if replacement:
                merged.append((key, replacement))
            continue
        merged.append((key, value))
    merged.extend((key, value) for key, value in pending.items() if value)

    path = parts.path or "/"
    return urlunsplit((parts.scheme.lower(), parts.netloc, path, urlencode(merged), parts.fragment))


def classify_aspect(width: int | None, height: int | None) -> str | None:
    """Classify pixel dimensions as "square", "vertical" or "other" (None if unknown)."""
    if not width or not height:
        return None
    ratio = width / height
    if abs(ratio - SQUARE_RATIO) <= ASPECT_TOLERANCE:
        return "square"
    if abs(ratio - VERTICAL_RATIO) <= ASPECT_TOLERANCE:
        return "vertical"
    return "other"


def humanize_slug(slug: str) -> str:
    """Turn "nw-pizza_house" into "NW Pizza House" (words of 2 chars or less uppercased)."""
    words = [w for w in re.split(r"[-_\s]+", slug) if w]
    return " ".join(w.upper() if len(w) <= 2 else w[0].upper() + w[1:] for w in words)


def humanize_method(method: str | None) -> str | None:
    """Label a gateway method tag for display, e.g. "worker_api" -> "Worker Api"."""
    if not method:
        return None
    return " ".join(s[0].upper() + s[1:] for s in re.split(r"[_\s-]+", method) if s)


def now_ms() -> int:
    """Current wall-clock time in milliseconds."""
    return int(time.time() * 1000)
