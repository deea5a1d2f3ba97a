# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""retry: run a shell command every N seconds until it exits zero.

Usage:
    retry [-n seconds] [-hvV] <command...>

Everything after the first non-option argument is part of the command, so
``retry -n 2 grep -q ready status.txt`` keeps ``-q`` for grep.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from guard.config import ConfigError, Configuration, Mode
from guard.controller import RetryController
from guard.process import Command, SpawnError
from guard.states import SupervisionState
from guard.utils import EXIT_FAILURE, EXIT_SUCCESS, positive_interval, setup_cli


def parse_args() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Relaunch a shell command on a fixed interval until it succeeds.",
    )
    parser.add_argument(
        "-n",
        dest="interval",
        metavar="seconds",
        type=positive_interval,
        default=None,
        help="Seconds between launches (default: $WARD_INTERVAL or 5)",
    )
    parser.add_argument(
        "command",
        nargs=argparse.REMAINDER,
        help="Shell command; remaining arguments are joined with spaces",
    )
    return parser


async def supervise(command: str, config: Configuration) -> int:
    """Run ``command`` until it exits zero and return the exit status."""
    controller = RetryController(Command.shell(command, config.shell), config)
    final = await controller.run()
    if final is SupervisionState.FINISHED:
        return EXIT_SUCCESS
    return EXIT_FAILURE


def main() -> None:
    parser = parse_args()
    args = setup_cli(parser)

    if not args.command:
        parser.error("missing command")

    try:
        config = Configuration.resolve(
            interval=args.interval,
            mode=Mode.RETRY_UNTIL_ZERO,
            verbose=args.verbose,
        )
    except ConfigError as exc:
        parser.error(str(exc))

    try:
        exit_code = asyncio.run(supervise(" ".join(args.command), config))
    except SpawnError as exc:
        logging.error(str(exc))
        sys.exit(EXIT_FAILURE)
    except KeyboardInterrupt:
        logging.error("User aborted!")
        sys.exit(EXIT_FAILURE)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
