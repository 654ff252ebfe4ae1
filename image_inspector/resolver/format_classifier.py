"""Map an image locator (and optionally a content type) to a format label."""
from __future__ import annotations

from urllib.parse import urlparse

from image_inspector.resolver.locator import parse_embedded

UNKNOWN_FORMAT = "Unknown"

_EXTENSION_FORMATS: dict[str, str] = {
    "jpg": "JPEG",
    "jpeg": "JPEG",
    "png": "PNG",
    "gif": "GIF",
    "webp": "WebP",
    "svg": "SVG",
    "bmp": "BMP",
    "ico": "ICO",
    "avif": "AVIF",
    "heic": "HEIC",
    "heif": "HEIF",
}

# MIME subtypes that don't match a file extension
_SUBTYPE_ALIASES: dict[str, str] = {
    "svg+xml": "SVG",
    "x-icon": "ICO",
    "vnd.microsoft.icon": "ICO",
    "pjpeg": "JPEG",
}


def extract_extension(locator: str) -> str | None:
    """Lower-cased extension of the last path segment, or None.

    Raises ValueError when the locator cannot be parsed as a URL.
    """
    parsed = urlparse(locator)
    segment = parsed.path.rsplit("/", 1)[-1]
    if "." not in segment:
        return None
    ext = segment.rsplit(".", 1)[-1].lower()
    return ext or None


def format_from_content_type(content_type: str | None) -> str | None:
    if not content_type:
        return None
    mime = content_type.split(";", 1)[0].strip().lower()
    if not mime.startswith("image/"):
        return None
    subtype = mime[len("image/"):]
    if not subtype:
        return None
    if subtype in _SUBTYPE_ALIASES:
        return _SUBTYPE_ALIASES[subtype]
    return _EXTENSION_FORMATS.get(subtype, subtype.upper())


def is_ambiguous(locator: str) -> bool:
    """True when the locator alone does not name a known format."""
    if locator.lower().startswith("data:"):
        return False
    try:
        ext = extract_extension(locator)
    except ValueError:
        return False  # unparseable, nothing to probe
    return ext not in _EXTENSION_FORMATS


def classify(locator: str, content_type: str | None = None) -> str:
    """Return the canonical format label for ``locator``.

    The file extension wins when it is in the known table. Otherwise a
    supplied ``image/<subtype>`` content type refines the result, and the raw
    upper-cased extension is the last resort before ``"Unknown"``.
    """
    if locator.lower().startswith("data:"):
        embedded = parse_embedded(locator)
        declared = embedded.media_type if embedded else locator[len("data:"):].split(";", 1)[0]
        return format_from_content_type(content_type or declared) or UNKNOWN_FORMAT

    try:
        parsed = urlparse(locator)
        if not parsed.scheme:
            return UNKNOWN_FORMAT
        ext = extract_extension(locator)
    except ValueError:
        return UNKNOWN_FORMAT

    if ext in _EXTENSION_FORMATS:
        return _EXTENSION_FORMATS[ext]

    refined = format_from_content_type(content_type)
    if refined:
        return refined
    if ext:
        return ext.upper()
    return UNKNOWN_FORMAT
