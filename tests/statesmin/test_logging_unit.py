"""Tests for the library's logging behaviour.

statesmin must stay silent until the application configures logging, and
its events must reach the standard logging module once it does.
"""

import logging
import os
import subprocess
import sys
import textwrap

import pytest

from statesmin import (
    Machine,
    MachineBuilder,
    TransitionConflictError,
    retry_conflicts,
)


SRC_DIR = os.path.abspath(
    os.path.join(os.path.dirname(__file__), "..", "..", "src")
)

UNCONFIGURED_SCRIPT = textwrap.dedent(
    """
    from statesmin import (
        Machine,
        MachineBuilder,
        TransitionConflictError,
        retry_conflicts,
    )

    builder = MachineBuilder("DoorMachine")
    builder.state("closed", initial=True).state("open")
    builder.transition(from_="closed", to="open")
    machine = Machine(object(), definition=builder.build())

    assert machine.try_transition_to("locked") is False
    machine.transition_to("open")

    def conflict():
        raise TransitionConflictError("stale version")

    try:
        retry_conflicts(conflict, max_retries=1)
    except TransitionConflictError:
        pass
    """
)


def _door_machine() -> Machine:
    builder = MachineBuilder("DoorMachine")
    builder.state("closed", initial=True).state("open")
    builder.transition(from_="closed", to="open")
    return Machine(object(), definition=builder.build())


class TestUnconfiguredLogging:

    def test_library_prints_nothing(self):
        env = dict(os.environ)
        env["PYTHONPATH"] = os.pathsep.join(
            filter(None, [SRC_DIR, env.get("PYTHONPATH")])
        )

        completed = subprocess.run(
            [sys.executable, "-c", UNCONFIGURED_SCRIPT],
            capture_output=True,
            text=True,
            env=env,
            timeout=60,
        )

        assert completed.returncode == 0, completed.stderr
        assert completed.stdout == ""
        assert completed.stderr == ""


class TestStdlibRouting:

    def test_rejection_reaches_stdlib_logger(self, caplog):
        caplog.set_level(logging.DEBUG, logger="statesmin")

        _door_machine().try_transition_to("locked")

        records = [r for r in caplog.records if r.name == "statesmin.machine"]
        assert any("Transition rejected" in r.getMessage() for r in records)

    def test_retry_warnings_reach_stdlib_logger(self, caplog):
        caplog.set_level(logging.DEBUG, logger="statesmin")

        def conflict():
            raise TransitionConflictError("stale version")

        with pytest.raises(TransitionConflictError):
            retry_conflicts(conflict, max_retries=1)

        warnings = [
            r
            for r in caplog.records
            if r.name == "statesmin.retry" and r.levelno == logging.WARNING
        ]
        assert len(warnings) == 2
