# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""when: run a finish command once a conditional command escalates.

Usage:
    when [-n seconds] [-t | -z] [-hvV] <condition> <finish>

Timebomb mode (``-t``, the default) launches ``condition`` and arms a timer.
If the condition is still running when the timer fires, ``finish`` is
started and the supervisor exits with the condition's eventual status. If the
condition exits first it is relaunched when the timer fires.

Zero-exit mode (``-z``) relaunches ``condition`` every N seconds until it
exits zero, then starts ``finish``.

Ctrl-C before escalation aborts without running ``finish`` (exit 1).
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from guard.config import ConfigError, Configuration, Mode
from guard.controller import ConditionalController
from guard.events import EventBridge
from guard.finish import FinishExecutor
from guard.process import Command, ProcessTable, SpawnError
from guard.states import SupervisionState
from guard.utils import EXIT_FAILURE, positive_interval, setup_cli


def parse_args() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run a finish command when a condition command times out or succeeds.",
    )
    parser.add_argument(
        "-n",
        dest="interval",
        metavar="seconds",
        type=positive_interval,
        default=None,
        help="Timeout / relaunch interval in seconds (default: $WARD_INTERVAL or 5)",
    )
    modes = parser.add_mutually_exclusive_group()
    modes.add_argument(
        "-t",
        dest="mode",
        action="store_const",
        const=Mode.CONDITION_TIMEOUT_TIMEBOMB,
        help="Run finish if the condition is still running at the timeout (default)",
    )
    modes.add_argument(
        "-z",
        dest="mode",
        action="store_const",
        const=Mode.CONDITION_TIMEOUT_ZERO,
        help="Run finish once the condition exits zero",
    )
    parser.add_argument("condition", help="Conditional shell command")
    parser.add_argument("finish", help="Shell command run on escalation")
    return parser


async def supervise(condition: str, finish: str, config: Configuration) -> int:
    """Supervise ``condition`` and return the supervisor's exit status."""
    processes = ProcessTable()
    with EventBridge(processes) as bridge:
        controller = ConditionalController(
            Command.shell(condition, config.shell),
            config,
            bridge,
            processes=processes,
        )
        final = await controller.run()
        if final is SupervisionState.CANCELLED:
            logging.error("User aborted!")
            return EXIT_FAILURE

        executor = FinishExecutor(bridge, processes)
        return await executor.run(controller.state, Command.shell(finish, config.shell))


def main() -> None:
    parser = parse_args()
    args = setup_cli(parser)

    try:
        config = Configuration.resolve(
            interval=args.interval,
            mode=args.mode or Mode.CONDITION_TIMEOUT_TIMEBOMB,
            verbose=args.verbose,
        )
    except ConfigError as exc:
        parser.error(str(exc))

    logging.info(
        f"supervising {args.condition!r} in {config.mode.value} mode "
        f"at interval {config.interval:g}"
    )

    try:
        exit_code = asyncio.run(supervise(args.condition, args.finish, config))
    except SpawnError as exc:
        logging.error(str(exc))
        sys.exit(EXIT_FAILURE)
    except KeyboardInterrupt:
        logging.error("User aborted!")
        sys.exit(EXIT_FAILURE)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
