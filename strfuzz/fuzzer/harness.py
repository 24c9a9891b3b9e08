"""Execution harness for the fuzz target.

Runs the target command once per candidate:
  1. Spawn the command through the platform shell (sh -c / cmd.exe /c)
  2. Write the candidate plus one line terminator to stdin, then close it
  3. Drain the merged stdout+stderr stream until EOF
  4. Wait for the exit code

No process is reused. An optional timeout kills a hung target instead of
stalling the run.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import time
from dataclasses import dataclass
from datetime import datetime, timezone

from strfuzz.core.types import ExecutionStatus, FailureReport

logger = logging.getLogger(__name__)


class HarnessError(RuntimeError):
    """The target could not be spawned, written to, or read from."""


# ── Execution Results ────────────────────────────────────────────────────────


@dataclass
class ExecutionOutcome:
    """Result of running one candidate against the target."""

    attempt: int
    input: str
    output: str = ""
    exit_code: int | None = 0
    status: ExecutionStatus = ExecutionStatus.PASSED
    duration_ms: float = 0.0

    @property
    def failed(self) -> bool:
        return self.status != ExecutionStatus.PASSED

    def to_report(self, pass_index: int = 0) -> FailureReport:
        return FailureReport(
            attempt=self.attempt,
            input=self.input,
            exit_code=self.exit_code,
            output=self.output,
            status=self.status,
            pass_index=pass_index,
            detected_at=datetime.now(timezone.utc),
        )


# ── Harness ──────────────────────────────────────────────────────────────────


class ExecutionHarness:
    """Feeds candidates to a shell command and classifies its exit status."""

    def __init__(
        self,
        command: str,
        cwd: str | None = None,
        timeout: float | None = None,
        encoding: str = "utf-8",
    ) -> None:
        self.command = command
        self.cwd = cwd
        self.timeout = timeout
        self.encoding = encoding

    def run(self, candidate: str, attempt: int = 0) -> ExecutionOutcome:
        """Execute the target with ``candidate`` on stdin.

        Raises HarnessError on OS-level failures; those are not target
        failures.
        """
        payload = (candidate + os.linesep).encode(self.encoding, errors="replace")
        start = time.monotonic()

        try:
            process = subprocess.Popen(
                self.command,
                shell=True,
                cwd=self.cwd,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                start_new_session=os.name == "posix",
            )
        except OSError as e:
            raise HarnessError(f"Could not start {self.command!r}: {e}") from e

        status = ExecutionStatus.PASSED
        try:
            raw, _ = process.communicate(input=payload, timeout=self.timeout)
        except subprocess.TimeoutExpired:
            self._kill(process)
            raw, _ = process.communicate()
            status = ExecutionStatus.TIMEOUT
            logger.warning("Attempt %d timed out after %ss", attempt, self.timeout)
        except OSError as e:
            self._kill(process)
            process.wait()
            raise HarnessError(f"I/O error while running {self.command!r}: {e}") from e

        exit_code: int | None = process.returncode
        if status == ExecutionStatus.TIMEOUT:
            exit_code = None
        elif exit_code != 0:
            status = ExecutionStatus.FAILED

        return ExecutionOutcome(
            attempt=attempt,
            input=candidate,
            output=(raw or b"").decode(self.encoding, errors="replace"),
            exit_code=exit_code,
            status=status,
            duration_ms=(time.monotonic() - start) * 1000,
        )

    @staticmethod
    def _kill(process: subprocess.Popen) -> None:
        # The shell may have spawned children that hold the output pipe open.
        try:
            if os.name == "posix":
                os.killpg(process.pid, signal.SIGKILL)
            else:
                process.kill()
        except (ProcessLookupError, PermissionError):
            pass
