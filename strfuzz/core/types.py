"""Shared enums and types used across the fuzzer."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_SEED_INPUT = '<html a="value">...</html>'
DEFAULT_COUNT = 64
DEFAULT_PASSES = 64


# ── Enums ────────────────────────────────────────────────────────────────────


class MutationType(str, enum.Enum):
    """Catalog of string mutation operators, in selection order."""

    INSERT_ASCII_SYMBOL = "insert_ascii_symbol"
    INSERT_LETTER_OR_DIGIT = "insert_letter_or_digit"
    INSERT_STRING = "insert_string"
    DELETE_CHAR = "delete_char"
    FLIP_BIT = "flip_bit"
    DUPLICATE = "duplicate_char"
    REPEAT_CHAR = "repeat_char"
    REPLACE_CHAR = "replace_char"
    SWITCH_CASE = "switch_case"
    REVERSE = "reverse_all"


class ExecutionStatus(str, enum.Enum):
    """Outcome class of one target execution."""

    PASSED = "passed"
    FAILED = "failed"
    TIMEOUT = "timeout"


class RunStatus(str, enum.Enum):
    """How a fuzzing run ended."""

    COMPLETED = "completed"
    EXHAUSTED = "exhausted"
    HALTED = "halted"


class ExitStatus(enum.IntEnum):
    """Process exit codes of the fuzzer itself."""

    SUCCESS = 0
    CONFIG_ERROR = 1
    FAILURE_FOUND = 2


# ── Shared Schemas ───────────────────────────────────────────────────────────


class MutatorWeight(BaseModel):
    """One ``name:weight`` entry of a mutator list."""

    model_config = ConfigDict(frozen=True)

    type: MutationType
    weight: int = Field(gt=0)


class FuzzConfig(BaseModel):
    """Validated, read-only configuration of a fuzzing run.

    An empty ``mutators`` list selects the full default catalog.
    """

    model_config = ConfigDict(frozen=True)

    seed_input: str = DEFAULT_SEED_INPUT
    count: int = Field(default=DEFAULT_COUNT, ge=0)
    passes: int = Field(default=DEFAULT_PASSES, ge=0)
    stop_on_first_failure: bool = True
    mutators: list[MutatorWeight] = Field(default_factory=list)
    timeout: float | None = Field(default=None, gt=0)
    random_seed: int | None = None


class FailureReport(BaseModel):
    """A target failure found during a run."""

    attempt: int
    input: str
    exit_code: int | None = None
    output: str = ""
    status: ExecutionStatus = ExecutionStatus.FAILED
    pass_index: int = 0
    detected_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
