"""Tests for the tagged outcome helpers."""
import asyncio
import logging

import pytest

from image_inspector.resolver.outcome import Failure, FailureReason, log_failure, race_timeout


@pytest.mark.asyncio
async def test_race_timeout_success():
    """操作先完成时返回成功"""
    async def _quick():
        return 42

    outcome = await race_timeout(_quick(), 1.0)

    assert outcome.ok
    assert outcome.value == 42


@pytest.mark.asyncio
async def test_race_timeout_elapsed():
    """超时先到时返回超时"""
    outcome = await race_timeout(asyncio.sleep(5), 0.01)

    assert not outcome.ok
    assert outcome.reason is FailureReason.TIMEOUT


@pytest.mark.asyncio
async def test_race_timeout_error_uses_given_reason():
    """操作出错时使用指定原因"""
    async def _broken():
        raise RuntimeError("Failed to load image")

    outcome = await race_timeout(_broken(), 1.0, on_error=FailureReason.NETWORK_DENIED)

    assert outcome.reason is FailureReason.NETWORK_DENIED
    assert "Failed to load image" in outcome.detail


def test_expected_reasons():
    """网络拒绝与跨域污染属于预期失败"""
    assert FailureReason.TAINT_FAILURE.expected
    assert FailureReason.NETWORK_DENIED.expected
    assert not FailureReason.DECODE_FAILURE.expected
    assert not FailureReason.TIMEOUT.expected


def test_expected_failures_are_logged_below_warning(caplog):
    """预期失败不记 WARNING"""
    logger = logging.getLogger("test.outcome")
    with caplog.at_level(logging.DEBUG, logger="test.outcome"):
        log_failure(logger, Failure(FailureReason.TAINT_FAILURE, "tainted"), "Preview render", "https://x/a.png")
        log_failure(logger, Failure(FailureReason.DECODE_FAILURE, "bad"), "Preview render", "https://x/b.png")

    levels = [r.levelno for r in caplog.records]
    assert levels == [logging.DEBUG, logging.WARNING]
