from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from enum import Enum
from urllib.parse import unquote_to_bytes, urlparse


class LocatorKind(str, Enum):
    EMBEDDED = "embedded"  # data:
    EPHEMERAL = "ephemeral"  # blob:
    NETWORK = "network"  # http(s)://
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class EmbeddedPayload:
    media_type: str
    is_base64: bool
    payload: str

    def decode(self) -> bytes:
        """Decode the inline payload. Raises ValueError on malformed data."""
        if self.is_base64:
            try:
                return base64.b64decode(self.payload, validate=False)
            except binascii.Error as e:
                raise ValueError(f"Invalid base64 payload: {e}") from e
        return unquote_to_bytes(self.payload)


def classify_locator(locator: str) -> LocatorKind:
    lowered = locator.strip().lower()
    if lowered.startswith("data:"):
        return LocatorKind.EMBEDDED
    if lowered.startswith("blob:"):
        return LocatorKind.EPHEMERAL
    try:
        parsed = urlparse(locator)
    except ValueError:
        return LocatorKind.UNSUPPORTED
    if parsed.scheme in ("http", "https") and parsed.netloc:
        return LocatorKind.NETWORK
    return LocatorKind.UNSUPPORTED


def parse_embedded(locator: str) -> EmbeddedPayload | None:
    """Split ``data:<media>[;base64],<payload>``. Returns None without a payload."""
    header, sep, payload = locator.partition(",")
    if not sep or not payload:
        return None
    params = header[len("data:"):].split(";")
    media_type = params[0].strip().lower() or "text/plain"
    is_base64 = any(p.strip().lower() == "base64" for p in params[1:])
    return EmbeddedPayload(media_type=media_type, is_base64=is_base64, payload=payload)


def is_svg_locator(locator: str) -> bool:
    lowered = locator.lower()
    return ".svg" in lowered or "image/svg" in lowered


def is_svg_bytes(data: bytes) -> bool:
    return b"<svg" in data[:2048].lower()
