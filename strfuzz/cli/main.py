"""strfuzz CLI — mutation fuzzer for programs that read stdin.

Usage:
    strfuzz run [options] <command>   Fuzz a command with mutated stdin lines
    strfuzz mutators                  List mutators and their default shares
    strfuzz config                    Show current configuration

Examples:
    strfuzz run ./parser
    strfuzz run -s "<a href=x>" -n 16 -p 200 -f ./parser
    strfuzz run -m "insert_ascii_symbol:10,flip_bit:5" "./parser --strict"
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import shlex
import shutil
import sys
import uuid
from pathlib import Path

from pydantic import ValidationError

from strfuzz import __version__
from strfuzz.core.config import Settings, get_settings
from strfuzz.core.logging import RunLogFilter, setup_logging
from strfuzz.core.types import ExitStatus, FailureReport, FuzzConfig
from strfuzz.fuzzer.engine import FuzzEngine, FuzzRunResult
from strfuzz.fuzzer.harness import ExecutionHarness
from strfuzz.fuzzer.mutators import (
    MutatorConfigError,
    build_mutators,
    parse_mutator_spec,
)
from strfuzz.fuzzer.selector import WeightedSelector

logger = logging.getLogger(__name__)


# ── Coloured output helpers ──────────────────────────────────────────────────

_RESET = "\033[0m"
_BOLD = "\033[1m"
_RED = "\033[91m"
_YELLOW = "\033[93m"
_GREEN = "\033[92m"
_CYAN = "\033[96m"
_DIM = "\033[2m"


def _c(text: str, code: str) -> str:
    return f"{code}{text}{_RESET}"


# ── Banner ───────────────────────────────────────────────────────────────────

BANNER = rf"""
{_BOLD}{_CYAN}     _        __
 ___| |_ _ __/ _|_   _ ________
/ __| __| '__| |_| | | |_  /_  /
\__ \ |_| |  |  _| |_| |/ / / /
|___/\__|_|  |_|  \__,_/___/___|{_RESET}
  {_DIM}Mutation fuzzer for stdin programs — v{__version__}{_RESET}
"""


class ConfigurationError(Exception):
    """Bad flag value, mutator list, or target command."""


# ── CLI argument parser ─────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="strfuzz",
        description="strfuzz — mutation fuzzer for programs that read stdin",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="store_true", help="Print version and exit")
    parser.add_argument("--no-banner", action="store_true", help="Suppress the startup banner")
    parser.add_argument("--quiet", "-q", action="store_true", help="Minimal output")
    parser.add_argument("--log-level", help="Log level (default: from settings, INFO)")

    sub = parser.add_subparsers(dest="command")

    # ── run ──────────────────────────────────────────────────────────────────
    run_p = sub.add_parser("run", help="Fuzz a command with mutated stdin input")
    run_p.add_argument("target", help="Command to fuzz, run through the platform shell")
    run_p.add_argument("--seed", "-s", dest="seed_input", help="Seed input to start fuzzing from")
    run_p.add_argument(
        "--count", "-n", type=int, help="Number of duplicated seed inputs to start with"
    )
    run_p.add_argument(
        "--passes", "-p", type=int, help="Maximum number of mutations applied to each seed input"
    )
    run_p.add_argument(
        "--no-stop", "-f", action="store_true", help="Do not stop fuzzing on first failure"
    )
    run_p.add_argument(
        "--mutators",
        "-m",
        help="Comma-separated <mutator>:<share> list, e.g. insert_ascii_symbol:10,flip_bit:5",
    )
    run_p.add_argument("--timeout", "-t", type=float, help="Kill a target after this many seconds")
    run_p.add_argument("--random-seed", type=int, help="Seed the random source for a reproducible run")
    run_p.add_argument("--workdir", "-C", help="Working directory for the target (default: .)")
    run_p.add_argument("--json", action="store_true", help="Print failures as JSON lines")

    # ── mutators ─────────────────────────────────────────────────────────────
    mut_p = sub.add_parser("mutators", help="List mutators and their selection shares")
    mut_p.add_argument("--mutators", "-m", help="Show shares for this list instead of the defaults")

    # ── config ───────────────────────────────────────────────────────────────
    sub.add_parser("config", help="Show current configuration")

    return parser


# ── Run command ──────────────────────────────────────────────────────────────


def _pick(value, default):
    return default if value is None else value


def build_fuzz_config(args: argparse.Namespace, settings: Settings) -> FuzzConfig:
    """Merge CLI flags over settings into a validated FuzzConfig."""
    try:
        return FuzzConfig(
            seed_input=_pick(args.seed_input, settings.seed_input),
            count=_pick(args.count, settings.count),
            passes=_pick(args.passes, settings.passes),
            stop_on_first_failure=settings.stop_on_first_failure and not args.no_stop,
            mutators=parse_mutator_spec(_pick(args.mutators, settings.mutators)),
            timeout=_pick(args.timeout, settings.timeout_seconds),
            random_seed=_pick(args.random_seed, settings.random_seed),
        )
    except MutatorConfigError as e:
        raise ConfigurationError(str(e)) from e
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigurationError(f"Invalid option: {problems}") from e


def check_target(command: str, workdir: str) -> None:
    """Require the command's program to exist in ``workdir`` or on PATH."""
    try:
        tokens = shlex.split(command, posix=os.name != "nt")
    except ValueError as e:
        raise ConfigurationError(f"Cannot parse command {command!r}: {e}") from e
    if not tokens:
        raise ConfigurationError("Missing command to fuzz.")

    program = tokens[0]
    if (Path(workdir) / program).exists() or shutil.which(program):
        return
    raise ConfigurationError(f'Could not find command "{program}".')


def _print_failure(report: FailureReport) -> None:
    print(_c(f"Found failure on attempt {report.attempt}", _RED + _BOLD))
    print(f"Input: {report.input}")
    if report.exit_code is None:
        print(f"Command timed out ({report.status.value})")
    else:
        print(f"Command failed with exit code {report.exit_code}")
    print()
    print(f"Output: {report.output}".strip())
    print()
    print()


def _print_failure_json(report: FailureReport) -> None:
    print(json.dumps(report.to_dict()), flush=True)


def _print_summary(result: FuzzRunResult) -> None:
    colour = _RED if result.failures else _GREEN
    print(
        f"\n{_BOLD}Fuzzing {result.status.value}{_RESET}"
        f"  |  Attempts: {result.attempts}"
        f"  |  Passes: {result.passes_completed}"
        f"  |  Failures: {_c(str(len(result.failures)), colour)}"
        f"  |  Survivors: {len(result.population)}"
        f"  |  Skipped: {result.skipped}",
        file=sys.stderr,
    )


def _run_fuzz(args: argparse.Namespace, settings: Settings) -> int:
    """Validate options, fuzz the target, and map the result to an exit code."""
    workdir = _pick(args.workdir, settings.workdir)
    try:
        config = build_fuzz_config(args, settings)
        check_target(args.target, workdir)
    except ConfigurationError as e:
        print(_c(f"Error: {e}", _RED), file=sys.stderr)
        return int(ExitStatus.CONFIG_ERROR)

    run_id = str(uuid.uuid4())
    run_filter = RunLogFilter(run_id)
    for handler in logging.getLogger().handlers:
        handler.addFilter(run_filter)

    if not args.quiet:
        print(f"Running command: {_c(args.target, _CYAN)}\n", file=sys.stderr)

    harness = ExecutionHarness(
        args.target,
        cwd=workdir,
        timeout=config.timeout,
        encoding=settings.encoding,
    )
    engine = FuzzEngine(
        config,
        harness,
        on_failure=_print_failure_json if args.json else _print_failure,
    )
    logger.info(
        "Fuzzing with %d candidates for %d passes", config.count, config.passes,
    )
    try:
        result = engine.run()
    finally:
        for handler in logging.getLogger().handlers:
            handler.removeFilter(run_filter)

    if not args.quiet:
        _print_summary(result)
    return result.exit_code


# ── Mutators command ─────────────────────────────────────────────────────────


def _run_mutators(args: argparse.Namespace) -> int:
    """Print the mutator catalog with weights and selection probabilities."""
    try:
        mutators = build_mutators(parse_mutator_spec(args.mutators or ""))
        selector = WeightedSelector(mutators)
    except MutatorConfigError as e:
        print(_c(f"Error: {e}", _RED), file=sys.stderr)
        return int(ExitStatus.CONFIG_ERROR)

    print(f"\n{_BOLD}Mutators{_RESET}  (total share {selector.total})\n")
    for mutator in selector.mutators:
        share = mutator.weight / selector.total
        print(f"  {mutator.name:<24} {mutator.weight:>4}  {_c(f'{share:6.1%}', _DIM)}")
    print()
    return 0


# ── Config command ───────────────────────────────────────────────────────────


def _run_config() -> int:
    """Print current settings."""
    s = get_settings()
    print(f"\n{_BOLD}strfuzz Configuration{_RESET}\n")
    for field_name in sorted(type(s).model_fields.keys()):
        val = getattr(s, field_name, "")
        print(f"  {_DIM}{field_name}:{_RESET}  {val!r}")
    print()
    return 0


# ── Entrypoint ───────────────────────────────────────────────────────────────


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        # argparse exits 2 on usage errors; 2 is reserved for findings.
        return int(ExitStatus.CONFIG_ERROR) if e.code else int(ExitStatus.SUCCESS)

    if args.version:
        print(f"strfuzz {__version__}")
        return 0

    try:
        settings = get_settings()
    except ValidationError as e:
        print(_c(f"Error: invalid STRFUZZ_* environment settings\n{e}", _RED), file=sys.stderr)
        return int(ExitStatus.CONFIG_ERROR)
    setup_logging(settings.app_env, args.log_level or settings.log_level)

    if not args.no_banner and not args.quiet:
        print(BANNER, file=sys.stderr)

    if not args.command:
        parser.print_help()
        return int(ExitStatus.CONFIG_ERROR)

    if args.command == "config":
        return _run_config()

    if args.command == "mutators":
        return _run_mutators(args)

    if args.command == "run":
        return _run_fuzz(args, settings)

    parser.print_help()
    return int(ExitStatus.CONFIG_ERROR)


if __name__ == "__main__":
    sys.exit(main())
