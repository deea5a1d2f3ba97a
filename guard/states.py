# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Supervision states and the transition table."""

from __future__ import annotations

import logging
import threading
from collections import deque
from enum import Enum

from guard.config import Mode
from guard.events import (
    CancelRequested,
    Event,
    IntervalElapsed,
    ProcessTerminated,
    TimerExpired,
)

logger = logging.getLogger(__name__)


class SupervisionState(Enum):
    IDLE = "idle"
    LAUNCHING = "launching"
    AWAITING_OUTCOME = "awaiting-outcome"
    WAITING = "waiting"
    RESTART = "restart"
    ALARM = "alarm"
    DIED = "died"
    FINISHED = "finished"
    CANCELLED = "cancelled"


S = SupervisionState

# Entering one of these launches the command again
LAUNCH_STATES = frozenset({S.IDLE, S.RESTART, S.DIED})
# The interval timer may only be armed in these
TIMED_STATES = frozenset({S.LAUNCHING, S.WAITING})
# The control loop stops here
TERMINAL_STATES = frozenset({S.ALARM, S.FINISHED, S.CANCELLED})
# The finish command may only be started from here
ESCALATION_STATES = frozenset({S.ALARM, S.FINISHED})


def transition(
    mode: Mode, state: SupervisionState, event: Event
) -> SupervisionState | None:
    """Return the state ``event`` leads to from ``state``, or None to ignore it.

    Timebomb mode holds in WAITING when the conditional exits and lets the
    timer decide: a timer seen before the exit escalates to ALARM, a timer
    seen after it relaunches through RESTART. The zero-exit modes finish on a
    zero exit and otherwise relaunch once the interval has elapsed.
    """
    if isinstance(event, CancelRequested):
        return S.CANCELLED if state in TIMED_STATES else None

    if mode.escalates_on_timeout:
        if isinstance(event, ProcessTerminated) and state is S.LAUNCHING:
            return S.WAITING
        if isinstance(event, TimerExpired):
            if state is S.LAUNCHING:
                return S.ALARM
            if state is S.WAITING:
                return S.RESTART
        return None

    if isinstance(event, ProcessTerminated) and state is S.LAUNCHING:
        return S.FINISHED if event.succeeded else S.WAITING
    if isinstance(event, IntervalElapsed) and state is S.WAITING:
        return S.RESTART
    return None


class StateCell:
    """Holds the current state; every change goes through compare_and_set."""

    def __init__(self, initial: SupervisionState = S.IDLE, *, history: int = 64):
        self._state = initial
        self._lock = threading.Lock()
        self.history: deque[SupervisionState] = deque([initial], maxlen=history)

    def get(self) -> SupervisionState:
        return self._state

    def compare_and_set(
        self, expected: SupervisionState, new: SupervisionState
    ) -> bool:
        """Switch to ``new`` only if the current state is ``expected``."""
        with self._lock:
            if self._state is not expected:
                return False
            self._state = new
            self.history.append(new)
        logger.info(f"switched to {new.name}")
        return True
