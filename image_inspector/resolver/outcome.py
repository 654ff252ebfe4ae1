"""Tagged results for resolution strategies.

Every strategy (probe, fetch, render, load) returns either ``Success(value)``
or ``Failure(reason)``. Strategies never raise past their own boundary; the
resolver inspects the outcome and moves on to the next strategy.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class FailureReason(str, Enum):
    NETWORK_DENIED = "network_denied"
    TIMEOUT = "timeout"
    MALFORMED_LOCATOR = "malformed_locator"
    DECODE_FAILURE = "decode_failure"
    TAINT_FAILURE = "taint_failure"

    @property
    def expected(self) -> bool:
        """Cross-origin refusals are normal on the open web and not worth a warning."""
        return self in (FailureReason.NETWORK_DENIED, FailureReason.TAINT_FAILURE)


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T
    ok: bool = True


@dataclass(frozen=True)
class Failure:
    reason: FailureReason
    detail: str = ""
    ok: bool = False


Outcome = Union[Success[T], Failure]


async def race_timeout(
    awaitable: Awaitable[T],
    timeout: float,
    *,
    on_error: FailureReason = FailureReason.DECODE_FAILURE,
) -> Outcome[T]:
    """Race ``awaitable`` against ``timeout`` seconds.

    Whichever settles first decides the outcome; the loser is cancelled, so
    the result is settled exactly once.
    """
    try:
        value = await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError:
        return Failure(FailureReason.TIMEOUT, f"timed out after {timeout:.1f}s")
    except Exception as e:
        return Failure(on_error, str(e))
    return Success(value)


def log_failure(logger: logging.Logger, failure: Failure, action: str, locator: str) -> None:
    """Report a strategy failure at a severity matching how surprising it is."""
    level = logging.DEBUG if failure.reason.expected else logging.WARNING
    logger.log(
        level, "%s failed (%s) for %s: %s",
        action, failure.reason.value, _shorten(locator), failure.detail,
    )


def _shorten(locator: str, limit: int = 120) -> str:
    # Embedded payloads can be megabytes long
    return locator if len(locator) <= limit else locator[: limit - 3] + "..."
