# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Tests for guard.timer."""

import asyncio

import pytest

from guard.timer import IntervalTimer, PollingTimer


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def test_polling_timer_expires_after_duration():
    clock = FakeClock()
    timer = PollingTimer(clock=clock)
    assert not timer.expired()

    timer.arm(2)
    assert timer.armed
    clock.now = 101.5
    assert not timer.expired()
    clock.now = 102.0
    assert timer.expired()

    timer.disarm()
    assert not timer.armed
    assert not timer.expired()


def test_polling_timer_refuses_double_arm():
    timer = PollingTimer(clock=FakeClock())
    timer.arm(1)
    with pytest.raises(RuntimeError):
        timer.arm(1)


@pytest.mark.asyncio
async def test_interval_timer_fires_once():
    fired = []
    timer = IntervalTimer(lambda: fired.append(True))

    timer.arm(0.01)
    assert timer.armed
    await asyncio.sleep(0.1)

    assert fired == [True]
    assert not timer.armed


@pytest.mark.asyncio
async def test_interval_timer_disarm_suppresses_expiry():
    fired = []
    timer = IntervalTimer(lambda: fired.append(True))

    timer.arm(0.05)
    timer.disarm()
    await asyncio.sleep(0.1)

    assert fired == []
    assert not timer.armed
    # Disarming twice is a no-op
    timer.disarm()


@pytest.mark.asyncio
async def test_interval_timer_refuses_double_arm():
    timer = IntervalTimer(lambda: None)
    timer.arm(10)
    try:
        with pytest.raises(RuntimeError):
            timer.arm(10)
    finally:
        timer.disarm()
