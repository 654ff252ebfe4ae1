"""Tests for the dimension/format based size estimate."""
import pytest

from image_inspector.resolver.size_estimator import estimate_size


@pytest.mark.parametrize("fmt", ["JPEG", "PNG", "SVG", "Unknown"])
def test_zero_dimension_gives_zero(fmt):
    """任一边为 0 时估算为 0"""
    assert estimate_size(0, 600, fmt) == 0
    assert estimate_size(800, 0, fmt) == 0


def test_jpeg_estimate():
    """JPEG 按 0.10 压缩比估算"""
    assert estimate_size(800, 600, "JPEG") == 192000


def test_unknown_format_uses_default_ratio():
    """未知格式使用默认压缩比"""
    assert estimate_size(100, 100, "Unknown") == 8000
    assert estimate_size(100, 100, "TIFF") == 8000


def test_bmp_is_uncompressed():
    """BMP 视为未压缩"""
    assert estimate_size(10, 10, "BMP") == 400


def test_tiny_image_is_at_least_one_byte():
    """极小图片至少 1 字节"""
    assert estimate_size(1, 1, "SVG") == 1


@pytest.mark.parametrize("fmt", ["JPEG", "PNG", "GIF", "WebP", "SVG", "BMP", "AVIF", "Unknown"])
def test_positive_dimensions_give_positive_size(fmt):
    """正尺寸总是得到正的估算值"""
    assert estimate_size(3, 7, fmt) >= 1
