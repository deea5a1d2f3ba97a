# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Escalation: start the finish command and resolve the exit status.

The status returned is the *conditional* (primary) process's, not the finish
command's. In timebomb mode the conditional is still running when the timer
fires and its natural termination is what completes the run; in zero-exit
mode it has already been reaped and the recorded zero exit is used.
A cancel signal while waiting aborts with status 1 and leaves both children
running.
"""

from __future__ import annotations

import logging
import signal

from guard import reaper
from guard.events import CancelRequested, EventBridge
from guard.process import Command, ProcessTable, Role, SupervisedProcess
from guard.reaper import WaitError
from guard.states import ESCALATION_STATES, StateCell, SupervisionState
from guard.timer import POLL_DELAY
from guard.utils import EXIT_FAILURE, EXIT_SUCCESS

logger = logging.getLogger(__name__)


class FinishExecutor:
    """Runs the finish phase exactly once.

    The primary is confirmed with non-blocking waits between bridge events,
    so SIGINT or SIGTERM still cancel the run while it waits on a hung
    condition.
    """

    def __init__(self, bridge: EventBridge, processes: ProcessTable):
        self.bridge = bridge
        self.processes = processes
        self._ran = False

    async def run(self, state: StateCell, command: Command) -> int:
        """Spawn ``command`` and return the supervisor's exit status."""
        current = state.get()
        if current not in ESCALATION_STATES:
            raise RuntimeError(f"finish phase cannot start from {current.name}")
        if self._ran:
            raise RuntimeError("finish phase already ran")
        self._ran = True

        # The finish command's exit must not be taken for the conditional's
        self.bridge.suppress(signal.SIGCHLD)

        primary = self.processes.primary
        secondary = SupervisedProcess.spawn(command, role=Role.SECONDARY)
        self.processes.track(secondary)
        state.compare_and_set(current, SupervisionState.AWAITING_OUTCOME)

        try:
            exit_code = await self._resolve(primary)
        except WaitError as exc:
            logger.error(str(exc))
            return EXIT_FAILURE
        finally:
            # A finish command still running is left to run on its own
            if reaper.poll(secondary):
                logger.debug(f"finish command {secondary.outcome}")

        if exit_code is None:
            logger.error("User aborted!")
            state.compare_and_set(SupervisionState.AWAITING_OUTCOME, SupervisionState.CANCELLED)
            return EXIT_FAILURE

        state.compare_and_set(SupervisionState.AWAITING_OUTCOME, SupervisionState.FINISHED)
        return exit_code

    async def _resolve(self, primary: SupervisedProcess | None) -> int | None:
        """Return the primary's exit status, or None if cancelled first."""
        if primary is None:
            logger.info("no conditional process was launched")
            return EXIT_SUCCESS

        already_reaped = primary.reaped
        while not reaper.poll(primary):
            event = await self.bridge.next_event(timeout=POLL_DELAY)
            if isinstance(event, CancelRequested):
                name = signal.Signals(event.signum).name
                logger.info(f"{name} while waiting for condition PID {primary.pid}")
                return None

        outcome = primary.outcome
        if outcome is None:
            logger.info(f"condition PID {primary.pid} already gone, assuming success")
            return EXIT_SUCCESS
        if already_reaped:
            logger.info(f"condition PID {primary.pid} already reaped with {outcome}")
        else:
            logger.info(f"condition PID {primary.pid} {outcome}")
        return outcome.exit_code
