"""CLI entry point for running end-to-end tests across browser engines."""

import argparse
import asyncio
import json
import logging
import shlex
import sys
from collections.abc import Mapping, Sequence
from contextlib import AsyncExitStack
from pathlib import Path
from typing import Any, Literal

from pydantic import ValidationError

from e2e_matrix.backends.base import Environment, EnvironmentKind
from e2e_matrix.backends.loading import load_backend_manifest
from e2e_matrix.collection import collect_tests
from e2e_matrix.config import RunConfig, SubjectConfig
from e2e_matrix.environments import open_environments
from e2e_matrix.errors import ErrorList
from e2e_matrix.models.result import Outcome
from e2e_matrix.models.testcase import TestCase
from e2e_matrix.orchestrator import TestOrchestrator
from e2e_matrix.reporter import (
    exit_code,
    format_error_list,
    format_error_output,
    format_output,
    format_report,
)
from e2e_matrix.subject import running_subject

type OutputFormat = Literal["text", "json"]


def print_outcomes(outcomes: Sequence[Outcome], output_format: OutputFormat) -> None:
    """Print the report for a completed run."""
    if output_format == "json":
        print(json.dumps(format_output(outcomes), indent=2))
    else:
        print(format_report(outcomes))


def print_errors(errors: ErrorList[Any], output_format: OutputFormat) -> None:
    """Print the diagnostic for a run that could not be carried out."""
    if output_format == "json":
        print(json.dumps(format_error_output(errors), indent=2))
    else:
        print(format_error_list(errors))


async def run(config: RunConfig, output_format: OutputFormat = "text") -> int:
    """Run the configured tests and return the exit code.

    Environment and cell setup failures, and environments failing to close,
    are printed as one error list and give exit code 1.
    """
    log = logging.getLogger("e2e_matrix")

    log.info("Loading backend: %s", config.backend)
    manifest = load_backend_manifest(config.backend)
    backend_config = manifest.config_cls(**config.backend_config)

    tests = collect_tests(config.tests)
    if not tests:
        log.info("No tests found in %s", ", ".join(config.tests))
        print_outcomes([], output_format)
        return 0

    async with AsyncExitStack() as stack:
        if config.subject is not None:
            await stack.enter_async_context(running_subject(config.subject))

        backend = await stack.enter_async_context(
            manifest.backend_factory(backend_config)
        )
        try:
            async with open_environments(backend, config.environments) as environments:
                outcomes = await run_matrix(config, tests, environments)
        except ErrorList as errors:
            print_errors(errors, output_format)
            return 1

    print_outcomes(outcomes, output_format)
    return exit_code(outcomes)


async def run_matrix(
    config: RunConfig,
    tests: Sequence[TestCase],
    environments: Mapping[EnvironmentKind, Environment[Any]],
) -> Sequence[Outcome]:
    """Run every test in every environment."""
    orchestrator = TestOrchestrator(
        concurrency=config.concurrency, timeout=config.timeout
    )
    return await orchestrator.run_tests(tests, environments)


def build_config(args: argparse.Namespace) -> RunConfig:
    """Build the run configuration from parsed arguments."""
    subject = None
    if args.subject_command:
        subject = SubjectConfig(
            command=shlex.split(args.subject_command),
            cwd=args.subject_cwd,
            ready_url=args.subject_ready_url,
            ready_timeout=args.subject_ready_timeout,
        )

    options: dict[str, Any] = {}
    if args.environments:
        options["environments"] = args.environments

    return RunConfig(
        tests=args.tests,
        concurrency=args.concurrency,
        timeout=args.timeout,
        backend=args.backend,
        backend_config=json.loads(args.backend_config),
        subject=subject,
        **options,
    )


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Run end-to-end tests in every browser engine"
    )
    parser.add_argument(
        "--tests",
        action="append",
        required=True,
        help="Module declaring tests (repeatable)",
    )
    parser.add_argument(
        "--environment",
        dest="environments",
        action="append",
        choices=[kind.value for kind in EnvironmentKind],
        help="Browser engine to run in (repeatable, default: all)",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help="Maximum number of tests running at once (default: all)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-test timeout in seconds",
    )
    parser.add_argument(
        "--backend",
        default="playwright",
        help="Environment backend key",
    )
    parser.add_argument(
        "--backend-config",
        default="{}",
        help="JSON configuration for the backend",
    )
    parser.add_argument(
        "--subject-command",
        default=None,
        help="Command starting the server under test",
    )
    parser.add_argument(
        "--subject-cwd",
        type=Path,
        default=None,
        help="Working directory of the server under test",
    )
    parser.add_argument(
        "--subject-ready-url",
        default=None,
        help="URL polled until the server under test answers",
    )
    parser.add_argument(
        "--subject-ready-timeout",
        type=float,
        default=30.0,
        help="Seconds to wait for the server under test",
    )
    parser.add_argument(
        "--output-format",
        choices=["text", "json"],
        default="text",
        help="Report format",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    # Test modules are resolved from the working directory
    sys.path.insert(0, str(Path.cwd()))

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    try:
        config = build_config(args)
    except (ValidationError, json.JSONDecodeError) as exc:
        parser.error(str(exc))

    status = asyncio.run(run(config, args.output_format))
    sys.exit(status)


if __name__ == "__main__":  # pragma: no cover
    main()
