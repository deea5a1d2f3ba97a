# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Collect terminated children with ``os.waitpid``.

Two modes are offered: :func:`wait_for` blocks until the child terminates,
:func:`poll` only confirms a termination the caller was notified about.
Both treat "no such child" as already reaped instead of failing, and neither
calls ``waitpid`` again on a handle that has been reaped, so a recycled PID
is never collected by mistake.

``EINTR`` never surfaces here: the interpreter retries ``waitpid`` after
running signal handlers (PEP 475).
"""

from __future__ import annotations

import logging
import os

from guard.process import Exited, ExitOutcome, Signaled, SupervisedProcess

logger = logging.getLogger(__name__)


class WaitError(RuntimeError):
    """Raised when collecting a child fails for a reason other than ECHILD."""


def classify(status: int) -> ExitOutcome:
    """Translate a raw ``waitpid`` status into an exit outcome."""
    if os.WIFSIGNALED(status):
        return Signaled(os.WTERMSIG(status))
    if os.WIFEXITED(status):
        return Exited(os.WEXITSTATUS(status))
    raise WaitError(f"unexpected wait status {status:#x}")


def wait_for(proc: SupervisedProcess) -> ExitOutcome | None:
    """Block until ``proc`` terminates and return its outcome.

    Returns None when there is no such child, either because it was reaped
    earlier by this supervisor or collected somewhere else.

    Raises:
        WaitError: If ``waitpid`` fails with anything but ECHILD
    """
    if proc.reaped:
        logger.debug(f"PID {proc.pid} already reaped, no child to wait for")
        return None
    try:
        _, status = os.waitpid(proc.pid, 0)
    except ChildProcessError:
        logger.debug(f"PID {proc.pid}: no such child")
        proc.mark_reaped(None)
        return None
    except OSError as exc:
        raise WaitError(f"waitpid({proc.pid}) failed: {exc}") from exc

    outcome = classify(status)
    proc.mark_reaped(outcome)
    logger.debug(f"PID {proc.pid} reaped: {outcome}")
    return outcome


def poll(proc: SupervisedProcess) -> bool:
    """Return True once ``proc`` has terminated, collecting it if needed.

    The outcome is recorded on ``proc``; it stays None when the child had
    already been collected elsewhere.
    """
    if proc.reaped:
        return True
    try:
        pid, status = os.waitpid(proc.pid, os.WNOHANG)
    except ChildProcessError:
        logger.debug(f"PID {proc.pid}: no such child")
        proc.mark_reaped(None)
        return True
    except OSError as exc:
        raise WaitError(f"waitpid({proc.pid}) failed: {exc}") from exc

    if pid == 0:
        return False
    outcome = classify(status)
    proc.mark_reaped(outcome)
    logger.debug(f"PID {proc.pid} reaped: {outcome}")
    return True
