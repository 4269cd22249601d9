"""Client-side request budget for a source with a fixed request quota."""

import math
import time
from dataclasses import dataclass
from typing import Callable, Optional, Union

from sync_sdk.constants import RATE_LIMIT_QUOTA, RATE_LIMIT_WINDOW_MS
from sync_sdk.observability.logger_adaptor import get_logger

logger = get_logger(__name__)


def monotonic_ms() -> float:
    return time.monotonic() * 1000


@dataclass(frozen=True)
class Allowed:
    """The request may be sent now."""


@dataclass(frozen=True)
class Rejected:
    """The request must not be sent before ``remaining_cooldown_ms`` elapse."""

    remaining_cooldown_ms: int


RateDecision = Union[Allowed, Rejected]


class RateWindowTracker:
    """Counts outbound requests in a time window and latches a cooldown.

    The first allowed attempt opens a window. Once ``quota`` attempts have been
    allowed, a cooldown deadline of ``now + window_ms`` is latched and every
    attempt before that deadline is rejected without reaching the source. The
    first attempt after the deadline starts a fresh window and is counted as
    its first request. A window that elapses before the quota is reached rolls
    over the same way.

    The tracker lives only as long as one invocation and is never persisted.

    Args:
        quota (int): Requests allowed per window.
        window_ms (int): Window length in milliseconds.
        clock (Callable[[], float]): Current time in milliseconds.
    """

    def __init__(
        self,
        quota: int = RATE_LIMIT_QUOTA,
        window_ms: int = RATE_LIMIT_WINDOW_MS,
        clock: Callable[[], float] = monotonic_ms,
    ):
        if quota <= 0:
            raise ValueError("quota must be positive")
        if window_ms <= 0:
            raise ValueError("window_ms must be positive")
        self.quota = quota
        self.window_ms = window_ms
        self.clock = clock
        self.request_count = 0
        self.window_start_ms: Optional[float] = None
        self.cooldown_until_ms: Optional[float] = None

    def attempt(self) -> RateDecision:
        now = self.clock()

        if self.cooldown_until_ms is not None:
            if now < self.cooldown_until_ms:
                return Rejected(math.ceil(self.cooldown_until_ms - now))
            logger.debug("Rate window cooldown elapsed, starting a new window")
            self._reset()
        elif (
            self.window_start_ms is not None
            and now - self.window_start_ms >= self.window_ms
        ):
            self._reset()

        if self.window_start_ms is None:
            self.window_start_ms = now
        self.request_count += 1

        if self.request_count >= self.quota:
            self.cooldown_until_ms = now + self.window_ms
            logger.info(
                f"Request quota of {self.quota} reached, cooling down for {self.window_ms} ms"
            )
        return Allowed()

    def remaining_quota(self) -> int:
        """Requests that can still be allowed before the cooldown latches."""
        now = self.clock()
        if self.cooldown_until_ms is not None:
            return self.quota if now >= self.cooldown_until_ms else 0
        if self.window_start_ms is None or now - self.window_start_ms >= self.window_ms:
            return self.quota
        return self.quota - self.request_count

    def ms_until_window_reset(self) -> int:
        """Milliseconds until the current window or cooldown ends; 0 if none."""
        now = self.clock()
        if self.cooldown_until_ms is not None:
            end = self.cooldown_until_ms
        elif self.window_start_ms is not None:
            end = self.window_start_ms + self.window_ms
        else:
            return 0
        return max(0, math.ceil(end - now))

    def _reset(self) -> None:
        self.request_count = 0
        self.window_start_ms = None
        self.cooldown_until_ms = None
