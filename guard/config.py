# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Supervisor configuration.

Values come from command line flags first, then from the environment (a
``.env`` file is loaded by :func:`guard.utils.setup_cli`):

    WARD_INTERVAL   default for ``-n`` (positive integer seconds)
    WARD_SHELL      interpreter used as ``<shell> -c <command>``
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from enum import Enum

DEFAULT_INTERVAL = 5
DEFAULT_SHELL = "/bin/sh"


class ConfigError(ValueError):
    """Raised for an invalid interval, conflicting modes or missing commands."""


class Mode(Enum):
    """Supervision pattern."""

    RETRY_UNTIL_ZERO = "retry-until-zero"
    CONDITION_TIMEOUT_ZERO = "condition-with-timeout-zero"
    CONDITION_TIMEOUT_TIMEBOMB = "condition-with-timeout-timebomb"

    @property
    def escalates_on_timeout(self) -> bool:
        return self is Mode.CONDITION_TIMEOUT_TIMEBOMB


def parse_interval(value: str | int | float) -> float:
    """Return ``value`` as a positive number of seconds or raise ConfigError."""
    try:
        seconds = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"invalid seconds argument: {value!r}") from exc
    if not math.isfinite(seconds) or seconds <= 0:
        raise ConfigError(f"invalid seconds argument: {value!r}")
    return seconds


def env_interval() -> float:
    """Default interval from ``WARD_INTERVAL``, falling back to DEFAULT_INTERVAL."""
    raw = os.getenv("WARD_INTERVAL")
    if raw is None or not raw.strip():
        return float(DEFAULT_INTERVAL)
    if not raw.strip().isdigit():
        raise ConfigError(f"WARD_INTERVAL must be a positive integer, got {raw!r}")
    return parse_interval(raw.strip())


def env_shell() -> str:
    return os.getenv("WARD_SHELL") or DEFAULT_SHELL


@dataclass(frozen=True)
class Configuration:
    """Validated settings for one supervisor run.

    The CLIs only accept whole seconds; fractional intervals are allowed here
    so callers embedding the controllers can poll faster.
    """

    interval: float = float(DEFAULT_INTERVAL)
    mode: Mode = Mode.CONDITION_TIMEOUT_TIMEBOMB
    verbose: bool = False
    shell: str = DEFAULT_SHELL

    def __post_init__(self) -> None:
        object.__setattr__(self, "interval", parse_interval(self.interval))
        if not isinstance(self.mode, Mode):
            raise ConfigError(f"unknown supervision mode: {self.mode!r}")
        if not self.shell:
            raise ConfigError("shell interpreter must not be empty")

    @classmethod
    def resolve(
        cls,
        *,
        interval: float | None,
        mode: Mode,
        verbose: bool = False,
    ) -> "Configuration":
        """Build a configuration, filling unset values from the environment."""
        if interval is None:
            interval = env_interval()
        return cls(interval=interval, mode=mode, verbose=verbose, shell=env_shell())
