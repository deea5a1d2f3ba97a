# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

import pytest

from guard.config import Configuration, Mode


@pytest.fixture(autouse=True)
def clean_ward_env(monkeypatch):
    """Keep WARD_* settings from the developer's shell out of the tests."""
    monkeypatch.delenv("WARD_INTERVAL", raising=False)
    monkeypatch.delenv("WARD_SHELL", raising=False)


@pytest.fixture
def make_config():
    """Build a Configuration with a sub-second interval for fast runs."""

    def _make(mode: Mode, interval: float = 0.1) -> Configuration:
        return Configuration(interval=interval, mode=mode)

    return _make
