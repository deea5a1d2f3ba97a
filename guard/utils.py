# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

from __future__ import annotations

import argparse
import logging

from dotenv import load_dotenv

from guard import __version__

EXIT_SUCCESS = 0
EXIT_FAILURE = 1

LOG_FORMAT = "%(levelname)s: %(message)s"


def positive_interval(value: str) -> int:
    """argparse type for ``-n``: a positive whole number of seconds."""
    try:
        seconds = int(value, 10)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid seconds argument: {value!r}")
    if seconds <= 0:
        raise argparse.ArgumentTypeError(f"invalid seconds argument: {value!r}")
    return seconds


def setup_cli(parser: argparse.ArgumentParser, *, parse_known: bool = False):
    """Parse command line arguments and configure logging.

    The parser will be extended with ``-v``/``--version``, ``-V``/``--verbose``
    and ``-d``/``--debug`` flags. Environment variables from ``.env`` are
    loaded first so configuration defaults can come from there. The parsed
    arguments are returned. If ``parse_known`` is ``True`` a tuple of
    ``(args, extra)`` is returned using
    :func:`argparse.ArgumentParser.parse_known_args`.
    """

    load_dotenv()
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
        help="Print version and exit",
    )
    parser.add_argument(
        "-V", "--verbose", action="store_true", help="Trace state transitions"
    )
    parser.add_argument(
        "-d", "--debug", action="store_true", help="Enable debug logging"
    )
    if parse_known:
        args, extra = parser.parse_known_args()
    else:
        args = parser.parse_args()
        extra = None

    if args.debug:
        log_level = logging.DEBUG
    elif args.verbose:
        log_level = logging.INFO
    else:
        log_level = logging.WARNING

    logging.basicConfig(level=log_level, format=LOG_FORMAT)

    return (args, extra) if parse_known else args
