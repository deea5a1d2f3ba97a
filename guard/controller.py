# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Supervision controllers: own the state and apply the transition table.

``RetryController`` blocks on each launch until the child exits and polls the
clock between launches. ``ConditionalController`` never blocks on the child;
it learns about terminations, timeouts and cancellation from the
:class:`~guard.events.EventBridge`.
"""

from __future__ import annotations

import asyncio
import logging
import signal

from guard import reaper
from guard.config import Configuration, Mode
from guard.events import (
    Event,
    EventBridge,
    IntervalElapsed,
    ProcessTerminated,
    TimerExpired,
)
from guard.process import Command, ProcessTable, Role, SupervisedProcess
from guard.states import (
    LAUNCH_STATES,
    TERMINAL_STATES,
    TIMED_STATES,
    StateCell,
    SupervisionState,
    transition,
)
from guard.timer import POLL_DELAY, IntervalTimer, PollingTimer

logger = logging.getLogger(__name__)

# Upper bound on one wait for bridge events in timebomb mode
EVENT_WAIT = 0.1


class Controller:
    """Shared launch and transition logic."""

    def __init__(
        self,
        command: Command,
        config: Configuration,
        *,
        processes: ProcessTable | None = None,
        state: StateCell | None = None,
    ):
        self.command = command
        self.config = config
        self.processes = processes if processes is not None else ProcessTable()
        self.state = state if state is not None else StateCell()
        self.timer: IntervalTimer | PollingTimer = PollingTimer()
        self.launches = 0

    @property
    def mode(self) -> Mode:
        return self.config.mode

    @property
    def primary(self) -> SupervisedProcess | None:
        return self.processes.primary

    def _launch(self) -> SupervisedProcess:
        current = self.state.get()
        if current not in LAUNCH_STATES:
            raise RuntimeError(f"cannot launch from {current.name}")

        proc = SupervisedProcess.spawn(self.command, role=Role.PRIMARY)
        self.processes.track(proc)
        self.launches += 1
        self.state.compare_and_set(current, SupervisionState.LAUNCHING)
        self.timer.arm(self.config.interval)
        return proc

    def _apply(self, event: Event) -> SupervisionState | None:
        current = self.state.get()
        new = transition(self.mode, current, event)
        if new is None:
            logger.debug(f"{type(event).__name__} ignored in {current.name}")
            return None
        if not self.state.compare_and_set(current, new):
            return None
        if new not in TIMED_STATES:
            self.timer.disarm()
        return new


class RetryController(Controller):
    """Relaunch ``command`` every ``interval`` seconds until it exits zero."""

    def __init__(self, command: Command, config: Configuration, **kwargs):
        if config.mode is not Mode.RETRY_UNTIL_ZERO:
            raise ValueError(f"RetryController cannot run in {config.mode.value} mode")
        super().__init__(command, config, **kwargs)

    async def run(self) -> SupervisionState:
        logger.info(f"running at interval {self.config.interval:g} until success")

        while self.state.get() not in TERMINAL_STATES:
            current = self.state.get()
            if current in LAUNCH_STATES:
                proc = self._launch()
                outcome = await asyncio.to_thread(reaper.wait_for, proc)
                if outcome is None:
                    logger.info("no child left to wait for, FINISHED")
                elif not outcome.success:
                    logger.info(f"{outcome}, WAITING for restart")
                self._apply(ProcessTerminated(proc.pid, outcome))
            elif current is SupervisionState.WAITING:
                await asyncio.sleep(POLL_DELAY)
                if self.timer.expired():
                    logger.info("finished WAITING, RESTARTING")
                    self._apply(IntervalElapsed())
            else:
                raise RuntimeError(f"unexpected state {current.name}")

        return self.state.get()


class ConditionalController(Controller):
    """Race a conditional command against the interval.

    In timebomb mode the interval is an escalation deadline delivered through
    the bridge; in zero-exit mode it is the relaunch delay after a failure.
    """

    def __init__(
        self,
        command: Command,
        config: Configuration,
        bridge: EventBridge,
        **kwargs,
    ):
        if config.mode is Mode.RETRY_UNTIL_ZERO:
            raise ValueError("ConditionalController needs a condition-with-timeout mode")
        super().__init__(command, config, **kwargs)
        self.bridge = bridge
        if self.mode.escalates_on_timeout:
            self.timer = IntervalTimer(self._on_timer)

    def _on_timer(self) -> None:
        self.bridge.notify(signal.SIGALRM)

    async def run(self) -> SupervisionState:
        poll = EVENT_WAIT if self.mode.escalates_on_timeout else POLL_DELAY

        while self.state.get() not in TERMINAL_STATES:
            current = self.state.get()
            if current in LAUNCH_STATES:
                self._launch()
                continue

            event = await self.bridge.next_event(timeout=poll)
            if event is None:
                if (
                    current is SupervisionState.WAITING
                    and isinstance(self.timer, PollingTimer)
                    and self.timer.expired()
                ):
                    self._apply(IntervalElapsed())
                continue

            if isinstance(event, TimerExpired):
                logger.info("timer expired")
            elif isinstance(event, ProcessTerminated):
                logger.info(f"condition PID {event.pid} terminated: {event.outcome}")
            self._apply(event)

        return self.state.get()
