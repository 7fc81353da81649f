"""Small HTML and URL helpers shared by the page renderers."""

import html
import re
from urllib.parse import quote

from app.config import settings

_COVER_SAFE = re.compile(r"^[-a-zA-Z0-9_./:]+$")
_HTTP_URL_SAFE = re.compile(r"""^https?://[^\s"'<>]+$""", re.IGNORECASE)
_ABSOLUTE_URL = re.compile(r"^https?://", re.IGNORECASE)
_NON_ASCII_SLUG = re.compile(r"[^a-z0-9]+")


def escape(value) -> str:
    """Escape text for HTML content and quoted attributes."""
    if value is None:
        return ""
    return html.escape(str(value), quote=True).replace("&#x27;", "&#39;")


def sanitize_cover(value) -> str:
    """A cover path or URL made only of safe characters, else ``""``."""
    raw = str(value or "").strip()
    if not raw or not _COVER_SAFE.match(raw):
        return ""
    return raw


def sanitize_url(value) -> str:
    raw = str(value or "").strip()
    if not raw or not _HTTP_URL_SAFE.match(raw):
        return ""
    return raw


def build_absolute_url(value, origin: str | None = None) -> str:
    raw = str(value or "").strip()
    if not raw:
        return ""
    if _ABSOLUTE_URL.match(raw):
        return raw
    origin = origin if origin is not None else settings.site_origin_clean
    prefix = "" if raw.startswith("/") else "/"
    return f"{origin}{prefix}{raw}"


def slugify_ascii(value) -> str:
    """Lowercase ASCII slug; non-ASCII text (e.g. Chinese city names) yields ``""``."""
    return _NON_ASCII_SLUG.sub("-", str(value or "").lower()).strip("-")


def encode_uri_component(value) -> str:
    return quote(str(value or ""), safe="-_.!~*'()")


def format_number(value) -> str:
    """Render a number without a trailing ``.0`` for whole values."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
