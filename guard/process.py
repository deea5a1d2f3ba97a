# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Process spawning and the per-role process table.

Children are started through ``subprocess.Popen`` and inherit the
supervisor's standard streams. Termination is collected by
:mod:`guard.reaper` with ``os.waitpid`` so the exact exit outcome (code or
signal) is visible to the state machine.
"""

from __future__ import annotations

import logging
import subprocess
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from guard.config import DEFAULT_SHELL

logger = logging.getLogger(__name__)


class SpawnError(RuntimeError):
    """Raised when a child process cannot be created."""


@dataclass(frozen=True)
class Exited:
    """Child called exit() with ``code``."""

    code: int

    @property
    def success(self) -> bool:
        return self.code == 0

    @property
    def exit_code(self) -> int:
        return self.code

    @property
    def returncode(self) -> int:
        return self.code

    def __str__(self) -> str:
        return f"exit status {self.code}"


@dataclass(frozen=True)
class Signaled:
    """Child was terminated by signal ``signum``."""

    signum: int

    @property
    def success(self) -> bool:
        return False

    @property
    def exit_code(self) -> int:
        # Same convention the shell uses for $?
        return 128 + self.signum

    @property
    def returncode(self) -> int:
        return -self.signum

    def __str__(self) -> str:
        return f"killed by signal {self.signum}"


ExitOutcome = Union[Exited, Signaled]


@dataclass(frozen=True)
class Command:
    """Argument vector for one launch: ``(shell, "-c", text)``."""

    argv: tuple[str, ...]

    @classmethod
    def shell(cls, text: str, shell: str = DEFAULT_SHELL) -> "Command":
        return cls(argv=(shell, "-c", text))

    @property
    def text(self) -> str:
        return self.argv[-1]

    def __str__(self) -> str:
        return self.text


class Role(Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


@dataclass
class SupervisedProcess:
    """A spawned child and what is known about its termination."""

    process: subprocess.Popen
    command: Command
    role: Role
    started_at: float
    outcome: ExitOutcome | None = None
    reaped: bool = False

    @classmethod
    def spawn(
        cls, command: Command, *, role: Role = Role.PRIMARY
    ) -> "SupervisedProcess":
        """Start ``command`` and return its handle.

        Raises:
            SpawnError: If the interpreter cannot be executed
        """
        logger.info(f"running {command} in subshell")
        started_at = time.monotonic()
        try:
            proc = subprocess.Popen(list(command.argv))
        except OSError as exc:
            raise SpawnError(f"Failed to spawn {command.argv[0]}: {exc}") from exc

        logger.debug(f"Started {role.value} with PID {proc.pid}")
        return cls(process=proc, command=command, role=role, started_at=started_at)

    @property
    def pid(self) -> int:
        """Process ID."""
        return self.process.pid

    def mark_reaped(self, outcome: ExitOutcome | None) -> None:
        """Record that the child has been collected.

        ``outcome`` is None when the child was already gone ("no such child").
        Popen's own returncode is kept in sync so it never waits on the pid.
        """
        self.reaped = True
        self.outcome = outcome
        if outcome is not None:
            self.process.returncode = outcome.returncode
        elif self.process.returncode is None:
            self.process.returncode = 0


@dataclass
class ProcessTable:
    """Tracked children keyed by role.

    A role's slot can only be reused once its current process is reaped.
    """

    _slots: dict[Role, SupervisedProcess] = field(default_factory=dict)

    def track(self, proc: SupervisedProcess) -> None:
        current = self._slots.get(proc.role)
        if current is not None and not current.reaped:
            raise RuntimeError(
                f"{proc.role.value} slot still holds unreaped PID {current.pid}"
            )
        self._slots[proc.role] = proc

    def get(self, role: Role) -> SupervisedProcess | None:
        return self._slots.get(role)

    @property
    def primary(self) -> SupervisedProcess | None:
        return self._slots.get(Role.PRIMARY)

    @property
    def secondary(self) -> SupervisedProcess | None:
        return self._slots.get(Role.SECONDARY)

    def live(self, *roles: Role) -> list[SupervisedProcess]:
        """Tracked processes not yet reaped, optionally limited to ``roles``."""
        wanted = roles or tuple(Role)
        return [
            proc
            for role, proc in self._slots.items()
            if role in wanted and not proc.reaped
        ]
