# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Tests for guard.reaper."""

import errno
import os
import signal
import time

import pytest

from guard import reaper
from guard.process import Command, Exited, Signaled, SupervisedProcess
from guard.reaper import WaitError


def test_classify_exit_and_signal_statuses():
    assert reaper.classify(0) == Exited(0)
    assert reaper.classify(3 << 8) == Exited(3)
    assert reaper.classify(signal.SIGKILL) == Signaled(signal.SIGKILL)


def test_wait_for_reports_signal():
    proc = SupervisedProcess.spawn(Command.shell("kill -TERM $$"))
    assert reaper.wait_for(proc) == Signaled(signal.SIGTERM)


def test_wait_for_already_reaped_returns_none():
    proc = SupervisedProcess.spawn(Command.shell("exit 0"))
    assert reaper.wait_for(proc) == Exited(0)
    # Second wait must not touch the (possibly recycled) pid
    assert reaper.wait_for(proc) is None
    assert proc.outcome == Exited(0)


def test_wait_for_no_such_child():
    proc = SupervisedProcess.spawn(Command.shell("exit 0"))
    os.waitpid(proc.pid, 0)  # reaped behind the supervisor's back

    assert reaper.wait_for(proc) is None
    assert proc.reaped
    assert proc.outcome is None


def test_wait_for_wraps_other_errors(monkeypatch):
    proc = SupervisedProcess.spawn(Command.shell("exit 0"))

    def broken_waitpid(pid, options):
        raise OSError(errno.EINVAL, "Invalid argument")

    monkeypatch.setattr(reaper.os, "waitpid", broken_waitpid)
    with pytest.raises(WaitError, match="waitpid"):
        reaper.wait_for(proc)
    monkeypatch.undo()
    reaper.wait_for(proc)


def test_poll_confirms_termination():
    proc = SupervisedProcess.spawn(Command.shell("sleep 0.2; exit 5"))
    assert reaper.poll(proc) is False
    assert not proc.reaped

    deadline = time.monotonic() + 5
    while not reaper.poll(proc):
        assert time.monotonic() < deadline
        time.sleep(0.01)

    assert proc.outcome == Exited(5)
    # Repeated confirmation is harmless
    assert reaper.poll(proc) is True
    assert proc.outcome == Exited(5)


def test_poll_no_such_child_counts_as_terminated():
    proc = SupervisedProcess.spawn(Command.shell("exit 1"))
    os.waitpid(proc.pid, 0)

    assert reaper.poll(proc) is True
    assert proc.outcome is None
