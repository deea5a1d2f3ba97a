# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Supervision events and the bridge that turns OS notifications into them.

Signal callbacks registered with ``loop.add_signal_handler`` only enqueue the
signal number; everything else (confirming a child really terminated,
dropping duplicates) happens on the consumer side in :meth:`next_event`.
The interval timer posts ``SIGALRM`` through the same :meth:`notify` entry
point, so a timeout and a child exit are ordered exactly as they were
observed. Whichever the controller sees first decides the transition.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from collections import deque
from dataclasses import dataclass
from typing import Union

from guard import reaper
from guard.process import ExitOutcome, ProcessTable, Role

logger = logging.getLogger(__name__)

CANCEL_SIGNALS = (signal.SIGINT, signal.SIGTERM)
WATCHED_SIGNALS = (signal.SIGCHLD, *CANCEL_SIGNALS)


@dataclass(frozen=True)
class ProcessTerminated:
    """A tracked child terminated; ``outcome`` is None if it was already reaped."""

    pid: int
    outcome: ExitOutcome | None

    @property
    def succeeded(self) -> bool:
        # "No such child" folds into success, like the blocking reaper
        return self.outcome is None or self.outcome.success


@dataclass(frozen=True)
class TimerExpired:
    pass


@dataclass(frozen=True)
class CancelRequested:
    signum: int = signal.SIGINT


@dataclass(frozen=True)
class IntervalElapsed:
    """Produced by the controller's poll check, never by the bridge."""


Event = Union[ProcessTerminated, TimerExpired, CancelRequested, IntervalElapsed]


class EventBridge:
    """Single-consumer queue of supervision events fed by signal callbacks.

    Use as a context manager from inside the running loop::

        with EventBridge(processes) as bridge:
            event = await bridge.next_event()
    """

    def __init__(self, processes: ProcessTable, *, roles: tuple[Role, ...] = (Role.PRIMARY,)):
        self._processes = processes
        self._roles = roles
        self._queue: asyncio.Queue[int] = asyncio.Queue()
        self._ready: deque[Event] = deque()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._installed: set[int] = set()

    def __enter__(self) -> "EventBridge":
        self._loop = asyncio.get_running_loop()
        for signum in WATCHED_SIGNALS:
            self._loop.add_signal_handler(signum, self.notify, signum)
            self._installed.add(signum)
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        """Remove every signal callback installed by this bridge."""
        for signum in sorted(self._installed):
            self._remove_handler(signum)
        self._installed.clear()

    def notify(self, signum: int) -> None:
        """Record one notification. Never blocks."""
        self._queue.put_nowait(signum)

    def suppress(self, signum: int) -> None:
        """Stop delivering ``signum`` and drop its queued notifications."""
        if signum in self._installed:
            self._remove_handler(signum)
            self._installed.discard(signum)

        kept = []
        while not self._queue.empty():
            pending = self._queue.get_nowait()
            if pending != signum:
                kept.append(pending)
        for pending in kept:
            self._queue.put_nowait(pending)

        if signum == signal.SIGCHLD:
            self._ready = deque(
                event
                for event in self._ready
                if not isinstance(event, ProcessTerminated)
            )
        logger.debug(f"suppressed {signal.Signals(signum).name} notifications")

    async def next_event(self, timeout: float | None = None) -> Event | None:
        """Return the next event, or None if ``timeout`` passes without one.

        A child notification that turns out to be a duplicate (every tracked
        process already reaped) also yields None.
        """
        if self._ready:
            return self._ready.popleft()
        try:
            signum = await asyncio.wait_for(self._queue.get(), timeout)
        except asyncio.TimeoutError:
            return None
        return self._translate(signum)

    def _translate(self, signum: int) -> Event | None:
        if signum == signal.SIGALRM:
            return TimerExpired()
        if signum in CANCEL_SIGNALS:
            return CancelRequested(signum)
        if signum == signal.SIGCHLD:
            for proc in self._processes.live(*self._roles):
                if reaper.poll(proc):
                    self._ready.append(ProcessTerminated(proc.pid, proc.outcome))
            if self._ready:
                return self._ready.popleft()
            logger.debug("child notification with no terminated process, ignored")
            return None
        logger.warning(f"ignoring unexpected signal {signum}")
        return None

    def _remove_handler(self, signum: int) -> None:
        if self._loop is not None and not self._loop.is_closed():
            self._loop.remove_signal_handler(signum)
