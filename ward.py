# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Unified CLI for ward - process supervision tools.

Usage:
    ward                    Show available commands
    ward <command> [args]   Run a subcommand
    ward <module> [args]    Run by module path (e.g., ward guard.retry)

Examples:
    ward retry -n 2 curl -sf http://localhost:8000/health
    ward when -n 30 -t "make test" "notify-send 'tests hung'"
    ward when -z "test -f done.flag" "echo finished"
"""

from __future__ import annotations

import importlib
import os
import sys

import setproctitle

from guard import __version__
from guard.config import DEFAULT_INTERVAL, DEFAULT_SHELL

# =============================================================================
# Command Registry
# =============================================================================
# Maps short command names to module paths.
# All modules must have a main() function as entry point.
# =============================================================================

COMMANDS: dict[str, str] = {
    "retry": "guard.retry",
    "when": "guard.when",
}

# Maps alias names to (module, default_args) tuples.
# Example: "timebomb" runs "ward when -t ..."
ALIASES: dict[str, tuple[str, list[str]]] = {
    "timebomb": ("guard.when", ["-t"]),
    "after": ("guard.when", ["-z"]),
}

GROUPS: dict[str, list[str]] = {
    "Supervision": ["retry", "when"],
}


def print_settings() -> None:
    """Print configuration picked up from the environment."""
    from dotenv import load_dotenv

    load_dotenv()
    print(f"WARD_SHELL={os.environ.get('WARD_SHELL') or DEFAULT_SHELL}")
    print(f"WARD_INTERVAL={os.environ.get('WARD_INTERVAL') or DEFAULT_INTERVAL}")
    print()


def print_help() -> None:
    """Print help with settings and available commands."""
    print("ward - process supervision tools\n")
    print_settings()

    print("Usage: ward <command> [args...]\n")

    for group_name, commands in GROUPS.items():
        print(f"{group_name}:")
        for cmd in commands:
            if cmd in COMMANDS:
                print(f"  {cmd:16} {COMMANDS[cmd]}")
        print()

    if ALIASES:
        print("Aliases:")
        for alias, (module, args) in ALIASES.items():
            args_str = " ".join(args) if args else ""
            print(f"  {alias:16} → {module} {args_str}")
        print()

    print("Direct module syntax: ward <module.path> [args]")
    print("Example: ward guard.when --help")


def resolve_command(name: str) -> tuple[str, list[str]]:
    """Resolve command name to module path and any preset args.

    Raises:
        ValueError: If command not found
    """
    if name in ALIASES:
        module, preset_args = ALIASES[name]
        return module, preset_args

    if name in COMMANDS:
        return COMMANDS[name], []

    if "." in name:
        return name, []

    available = sorted(set(COMMANDS.keys()) | set(ALIASES.keys()))
    raise ValueError(
        f"Unknown command: {name}\nAvailable commands: {', '.join(available)}"
    )


def run_command(module_path: str) -> int:
    """Import and run a module's main() function.

    Returns:
        Exit code (0 for success)
    """
    try:
        module = importlib.import_module(module_path)
    except ImportError as e:
        print(f"Error: Could not import module '{module_path}': {e}", file=sys.stderr)
        return 1

    if not hasattr(module, "main"):
        print(f"Error: Module '{module_path}' has no main() function", file=sys.stderr)
        return 1

    try:
        module.main()
        return 0
    except SystemExit as e:
        # Preserve exit code from subcommand
        return e.code if isinstance(e.code, int) else (1 if e.code else 0)


def main() -> None:
    """Main entry point for ward CLI."""
    if len(sys.argv) < 2:
        print_help()
        return

    cmd = sys.argv[1]

    if cmd in ("--help", "-h", "help"):
        print_help()
        return

    if cmd == "--version":
        print(f"ward {__version__}")
        return

    try:
        module_path, preset_args = resolve_command(cmd)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    setproctitle.setproctitle(f"ward:{cmd}")

    # ["ward", "retry", "-n", "2", "make"] becomes ["ward retry", "-n", "2", "make"]
    # so argparse prints "usage: ward retry ..."
    remaining_args = sys.argv[2:]
    sys.argv = [f"ward {cmd}"] + preset_args + remaining_args

    exit_code = run_command(module_path)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
