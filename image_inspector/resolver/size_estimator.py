from __future__ import annotations

import math

# Approximate encoded size relative to raw RGBA
_COMPRESSION_RATIOS: dict[str, float] = {
    "JPEG": 0.10,
    "PNG": 0.30,
    "GIF": 0.15,
    "WebP": 0.08,
    "SVG": 0.001,
    "BMP": 1.00,
    "AVIF": 0.06,
}
_DEFAULT_RATIO = 0.20

_BYTES_PER_PIXEL = 4


def estimate_size(width: int, height: int, fmt: str) -> int:
    """Approximate byte size of an image when no authoritative size is known.

    Returns 0 when either dimension is non-positive, otherwise at least 1.
    """
    if width <= 0 or height <= 0:
        return 0
    ratio = _COMPRESSION_RATIOS.get(fmt, _DEFAULT_RATIO)
    estimated = math.floor(width * height * _BYTES_PER_PIXEL * ratio)
    return max(1, estimated)
