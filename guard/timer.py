# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Interval timers used as relaunch delays and escalation deadlines."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

logger = logging.getLogger(__name__)

# Sleep between elapsed-interval checks in the polling variant
POLL_DELAY = 0.01


class IntervalTimer:
    """One-shot deadline on the running event loop.

    ``arm`` schedules exactly one call to ``on_expire``; ``disarm`` cancels it
    and guarantees the callback will not run. At most one deadline is pending.
    """

    def __init__(self, on_expire: Callable[[], None]):
        self._on_expire = on_expire
        self._handle: asyncio.TimerHandle | None = None

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def arm(self, duration: float) -> None:
        if self._handle is not None:
            raise RuntimeError("timer is already armed")
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(duration, self._expire)
        logger.debug(f"timer armed for {duration}s")

    def disarm(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
            logger.debug("timer disarmed")

    def _expire(self) -> None:
        self._handle = None
        self._on_expire()


class PollingTimer:
    """Deadline checked against a clock instead of delivered as an event.

    Callers sleep ``POLL_DELAY`` between :meth:`expired` checks, so a relaunch
    happens at most a few milliseconds after the interval has elapsed.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._deadline: float | None = None

    @property
    def armed(self) -> bool:
        return self._deadline is not None

    def arm(self, duration: float) -> None:
        if self._deadline is not None:
            raise RuntimeError("timer is already armed")
        self._deadline = self._clock() + duration

    def disarm(self) -> None:
        self._deadline = None

    def expired(self) -> bool:
        return self._deadline is not None and self._clock() >= self._deadline
