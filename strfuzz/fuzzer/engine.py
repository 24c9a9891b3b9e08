"""Generation loop — mutate, execute, and filter a population of candidates.

A run starts from ``count`` copies of the seed input. Each pass:
  1. Mutates every candidate with one weighted-randomly selected operator
  2. Strips newlines so a candidate stays a single line of target input
  3. Executes every candidate against the target, in generation order
  4. Keeps the survivors (exit status 0) for the next pass

A failing candidate either halts the whole run (stop on first failure) or
is dropped from the population. Only known-safe inputs keep evolving.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Callable, Protocol

from strfuzz.core.types import ExitStatus, FailureReport, FuzzConfig, RunStatus
from strfuzz.fuzzer.harness import ExecutionOutcome, HarnessError
from strfuzz.fuzzer.mutators import Mutator, build_mutators
from strfuzz.fuzzer.selector import WeightedSelector

logger = logging.getLogger(__name__)


class Runner(Protocol):
    def run(self, candidate: str, attempt: int = 0) -> ExecutionOutcome: ...


class FuzzHalted(Exception):
    """Raised inside a pass when a failure stops the run."""

    def __init__(self, report: FailureReport) -> None:
        super().__init__(f"Target failed on attempt {report.attempt}")
        self.report = report


# ── State ────────────────────────────────────────────────────────────────────


@dataclass
class EngineState:
    """Mutable state threaded through one run."""

    rng: random.Random
    population: list[str] = field(default_factory=list)
    attempt: int = 0
    pass_index: int = 0
    skipped: int = 0


@dataclass
class FuzzRunResult:
    """Summary of a finished run."""

    status: RunStatus
    population: list[str]
    failures: list[FailureReport] = field(default_factory=list)
    attempts: int = 0
    passes_completed: int = 0
    skipped: int = 0

    @property
    def exit_code(self) -> int:
        if self.status == RunStatus.HALTED:
            return int(ExitStatus.FAILURE_FOUND)
        return int(ExitStatus.SUCCESS)


# ── Engine ───────────────────────────────────────────────────────────────────


class FuzzEngine:
    """Multi-pass mutation fuzzer driving one target command.

    Args:
        config: Validated run configuration
        harness: Executes one candidate and reports its outcome
        rng: Random source; defaults to one seeded from ``config.random_seed``
        on_failure: Called with every failure report as it is found
    """

    def __init__(
        self,
        config: FuzzConfig,
        harness: Runner,
        rng: random.Random | None = None,
        on_failure: Callable[[FailureReport], None] | None = None,
    ) -> None:
        self.config = config
        self.harness = harness
        self.on_failure = on_failure
        self.selector = WeightedSelector(build_mutators(config.mutators))
        self.state = EngineState(
            rng=rng or random.Random(config.random_seed),
            population=self.initial_population(),
        )
        self.failures: list[FailureReport] = []

    @property
    def mutators(self) -> list[Mutator]:
        return self.selector.mutators

    def initial_population(self) -> list[str]:
        return [self.config.seed_input] * self.config.count

    # ── Pass steps ───────────────────────────────────────────────────

    def mutate_population(self, population: list[str]) -> list[str]:
        """Apply one selected operator to each candidate, in order."""
        rng = self.state.rng
        return [self.selector.select(rng).mutate(candidate, rng) for candidate in population]

    @staticmethod
    def sanitize(candidate: str) -> str:
        return candidate.replace("\n", "")

    def execute_population(self, population: list[str]) -> list[str]:
        """Run every candidate and return the next population.

        Confirmed failures are dropped; candidates the harness could not
        run are kept since they were never shown to fail.
        """
        survivors: list[str] = []
        for candidate in population:
            self.state.attempt += 1
            attempt = self.state.attempt

            try:
                outcome = self.harness.run(candidate, attempt)
            except HarnessError as e:
                self.state.skipped += 1
                logger.error(
                    "Error while trying input %r: %s", candidate, e,
                    extra={"attempt": attempt},
                )
                survivors.append(candidate)
                continue

            if not outcome.failed:
                survivors.append(candidate)
                continue

            report = outcome.to_report(pass_index=self.state.pass_index)
            self._record_failure(report)
            if self.config.stop_on_first_failure:
                raise FuzzHalted(report)

        return survivors

    def _record_failure(self, report: FailureReport) -> None:
        self.failures.append(report)
        logger.warning(
            "Found failure on attempt %d (exit code %s)",
            report.attempt, report.exit_code,
            extra={"attempt": report.attempt, "exit_code": report.exit_code,
                   "pass_index": report.pass_index},
        )
        if self.on_failure is not None:
            self.on_failure(report)

    # ── Run ──────────────────────────────────────────────────────────

    def run_pass(self) -> list[str]:
        """Run one full pass and replace the population with its survivors."""
        self.state.pass_index += 1
        mutated = [self.sanitize(c) for c in self.mutate_population(self.state.population)]
        self.state.population = self.execute_population(mutated)
        logger.info(
            "Pass %d/%d done, %d candidates survive",
            self.state.pass_index, self.config.passes, len(self.state.population),
            extra={"pass_index": self.state.pass_index, "population": len(self.state.population)},
        )
        return self.state.population

    def run(self) -> FuzzRunResult:
        status = RunStatus.COMPLETED
        try:
            while self.state.pass_index < self.config.passes:
                if not self.run_pass():
                    status = RunStatus.EXHAUSTED
                    logger.info("Population exhausted after pass %d", self.state.pass_index)
                    break
        except FuzzHalted as halt:
            status = RunStatus.HALTED
            logger.info("Stopping on first failure (attempt %d)", halt.report.attempt)

        passes_completed = self.state.pass_index
        if status == RunStatus.HALTED:
            passes_completed -= 1

        return FuzzRunResult(
            status=status,
            population=list(self.state.population),
            failures=list(self.failures),
            attempts=self.state.attempt,
            passes_completed=passes_completed,
            skipped=self.state.skipped,
        )
