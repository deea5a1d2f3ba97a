# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Process supervision primitives shared by the ``retry`` and ``when`` tools."""

__version__ = "0.1.0"

from .config import ConfigError, Configuration, Mode
from .process import Command, SpawnError, SupervisedProcess
from .reaper import WaitError
from .states import SupervisionState

__all__ = [
    "__version__",
    "Command",
    "ConfigError",
    "Configuration",
    "Mode",
    "SpawnError",
    "SupervisedProcess",
    "SupervisionState",
    "WaitError",
]
