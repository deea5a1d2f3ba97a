# SPDX-License-Identifier: AGPL-3.0-only
# Copyright (c) 2026 sol pbc

"""Tests for the ``retry`` and ``when`` command line entry points."""

import sys

import pytest

from guard import __version__, process, retry, when
from guard.config import Mode


def _run(monkeypatch, module, *argv):
    monkeypatch.setattr(sys, "argv", [module.__name__.rsplit(".", 1)[-1], *argv])
    with pytest.raises(SystemExit) as exc_info:
        module.main()
    return exc_info.value.code


@pytest.fixture
def no_spawn(monkeypatch):
    """Fail loudly if anything tries to start a child process."""
    calls = []

    def forbidden_popen(*args, **kwargs):
        calls.append(args)
        raise AssertionError("Popen must not be called")

    monkeypatch.setattr(process.subprocess, "Popen", forbidden_popen)
    return calls


@pytest.fixture
def captured_retry(monkeypatch):
    """Replace retry.supervise and record what it was asked to run."""
    seen = {}

    async def fake_supervise(command, config):
        seen["command"] = command
        seen["config"] = config
        return 0

    monkeypatch.setattr(retry, "supervise", fake_supervise)
    return seen


@pytest.fixture
def captured_when(monkeypatch):
    seen = {}

    async def fake_supervise(condition, finish, config):
        seen.update(condition=condition, finish=finish, config=config)
        return 0

    monkeypatch.setattr(when, "supervise", fake_supervise)
    return seen


def test_when_rejects_conflicting_modes(monkeypatch, capsys, no_spawn):
    assert _run(monkeypatch, when, "-t", "-z", "true", "true") == 2
    assert "not allowed with argument" in capsys.readouterr().err
    assert no_spawn == []


@pytest.mark.parametrize("value", ["0", "-3", "abc", "1.5"])
def test_invalid_interval_is_usage_error(monkeypatch, capsys, no_spawn, value):
    assert _run(monkeypatch, when, f"-n{value}", "true", "true") == 2
    assert "invalid seconds argument" in capsys.readouterr().err
    assert no_spawn == []


def test_when_requires_both_commands(monkeypatch, no_spawn):
    assert _run(monkeypatch, when, "true") == 2


def test_retry_requires_command(monkeypatch, capsys, no_spawn):
    assert _run(monkeypatch, retry) == 2
    assert "missing command" in capsys.readouterr().err


@pytest.mark.parametrize("module", [retry, when])
def test_version_flag(monkeypatch, capsys, module):
    assert _run(monkeypatch, module, "-v") == 0
    assert __version__ in capsys.readouterr().out


@pytest.mark.parametrize("module", [retry, when])
def test_help_flag(monkeypatch, capsys, module):
    assert _run(monkeypatch, module, "-h") == 0
    assert "-n seconds" in capsys.readouterr().out


def test_retry_keeps_options_after_command(monkeypatch, captured_retry):
    assert _run(monkeypatch, retry, "-n", "2", "grep", "-q", "ready", "status.txt") == 0

    assert captured_retry["command"] == "grep -q ready status.txt"
    assert captured_retry["config"].interval == 2
    assert captured_retry["config"].mode is Mode.RETRY_UNTIL_ZERO


def test_when_defaults_to_timebomb(monkeypatch, captured_when):
    assert _run(monkeypatch, when, "make test", "echo hung") == 0

    config = captured_when["config"]
    assert config.mode is Mode.CONDITION_TIMEOUT_TIMEBOMB
    assert config.interval == 5
    assert captured_when["condition"] == "make test"
    assert captured_when["finish"] == "echo hung"


def test_environment_defaults(monkeypatch, captured_when):
    monkeypatch.setenv("WARD_INTERVAL", "12")
    monkeypatch.setenv("WARD_SHELL", "/bin/bash")

    assert _run(monkeypatch, when, "-z", "true", "true") == 0

    config = captured_when["config"]
    assert config.interval == 12
    assert config.shell == "/bin/bash"
    assert config.mode is Mode.CONDITION_TIMEOUT_ZERO


def test_flag_overrides_environment(monkeypatch, captured_retry):
    monkeypatch.setenv("WARD_INTERVAL", "12")
    assert _run(monkeypatch, retry, "-n", "3", "true") == 0
    assert captured_retry["config"].interval == 3


def test_invalid_environment_interval(monkeypatch, capsys, no_spawn):
    monkeypatch.setenv("WARD_INTERVAL", "soon")
    assert _run(monkeypatch, retry, "true") == 2
    assert "WARD_INTERVAL" in capsys.readouterr().err


def test_spawn_failure_exits_one(monkeypatch, caplog):
    monkeypatch.setenv("WARD_SHELL", "/nonexistent/shell")
    assert _run(monkeypatch, retry, "true") == 1
    assert any("Failed to spawn" in message for message in caplog.messages)


@pytest.mark.integration
def test_retry_succeeds_immediately(monkeypatch):
    assert _run(monkeypatch, retry, "-n", "1", "true") == 0


@pytest.mark.integration
def test_when_zero_exit_end_to_end(monkeypatch):
    assert _run(monkeypatch, when, "-z", "-n", "1", "true", "true") == 0
