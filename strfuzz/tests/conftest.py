"""Shared fixtures for the strfuzz test suite."""

from __future__ import annotations

import logging
import random
import sys
from pathlib import Path
from typing import Callable

import pytest

from strfuzz.core.config import get_settings
from strfuzz.core.types import ExecutionStatus, FuzzConfig, MutationType, MutatorWeight
from strfuzz.fuzzer.harness import ExecutionOutcome, HarnessError


# ── Global state ─────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _isolate_settings_and_logging():
    """Reset cached settings and root logging around every test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    root.handlers[:] = handlers
    root.setLevel(level)


# ── Fake harness ─────────────────────────────────────────────────────────────


class ScriptedHarness:
    """In-process stand-in for ExecutionHarness.

    ``fails`` decides which candidates exit non-zero; ``errors`` decides
    which raise HarnessError. Every call is recorded.
    """

    def __init__(
        self,
        fails: Callable[[str], bool] = lambda _: False,
        errors: Callable[[str], bool] = lambda _: False,
        exit_code: int = 1,
    ) -> None:
        self.fails = fails
        self.errors = errors
        self.exit_code = exit_code
        self.calls: list[tuple[int, str]] = []

    def run(self, candidate: str, attempt: int = 0) -> ExecutionOutcome:
        self.calls.append((attempt, candidate))
        if self.errors(candidate):
            raise HarnessError("broken pipe")
        if self.fails(candidate):
            return ExecutionOutcome(
                attempt=attempt,
                input=candidate,
                output="boom\n",
                exit_code=self.exit_code,
                status=ExecutionStatus.FAILED,
            )
        return ExecutionOutcome(attempt=attempt, input=candidate)

    @property
    def inputs(self) -> list[str]:
        return [c for _, c in self.calls]


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def make_harness() -> type[ScriptedHarness]:
    return ScriptedHarness


@pytest.fixture
def passing_harness() -> ScriptedHarness:
    return ScriptedHarness()


@pytest.fixture
def failing_harness() -> ScriptedHarness:
    return ScriptedHarness(fails=lambda _: True, exit_code=3)


@pytest.fixture
def reverse_only_config() -> FuzzConfig:
    return FuzzConfig(
        seed_input="ab",
        count=1,
        passes=1,
        mutators=[MutatorWeight(type=MutationType.REVERSE, weight=1)],
        random_seed=7,
    )


# ── Real target scripts ──────────────────────────────────────────────────────


def _python_target(tmp_path: Path, name: str, body: str) -> str:
    script = tmp_path / name
    script.write_text("import sys\n" + body + "\n")
    return f'"{sys.executable}" "{script}"'


@pytest.fixture
def exit_zero_target(tmp_path: Path) -> str:
    return _python_target(tmp_path, "ok.py", "sys.stdin.buffer.read()\nsys.exit(0)")


@pytest.fixture
def exit_one_target(tmp_path: Path) -> str:
    return _python_target(
        tmp_path, "crash.py",
        "sys.stdin.buffer.read()\nprint('crashed', file=sys.stderr)\nsys.exit(1)",
    )


@pytest.fixture
def echo_target(tmp_path: Path) -> str:
    return _python_target(
        tmp_path, "echo.py",
        "data = sys.stdin.buffer.read()\nsys.stdout.write(repr(data))\nsys.exit(0)",
    )


@pytest.fixture
def reject_z_target(tmp_path: Path) -> str:
    return _python_target(
        tmp_path, "reject_z.py",
        "sys.exit(1 if b'Z' in sys.stdin.buffer.read() else 0)",
    )


@pytest.fixture
def hang_target(tmp_path: Path) -> str:
    return _python_target(tmp_path, "hang.py", "import time\ntime.sleep(30)")
