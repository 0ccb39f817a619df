"""Test orchestrator for running every test in every environment."""

import asyncio
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from e2e_matrix.backends.base import Environment, EnvironmentKind
from e2e_matrix.capture import routed_output
from e2e_matrix.errors import ErrorList, FailedToOpenPage, SetupError
from e2e_matrix.matrix import MatrixCell, build_matrix
from e2e_matrix.models.result import Outcome
from e2e_matrix.models.testcase import TestCase
from e2e_matrix.runner import run_cell

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class TestOrchestrator:
    """Runs the test x environment matrix with bounded concurrency.

    A concurrency of None runs every cell at once.
    """

    __test__ = False

    concurrency: int | None = None
    timeout: float | None = None

    async def run_tests(
        self,
        tests: Sequence[TestCase],
        environments: Mapping[EnvironmentKind, Environment[Any]],
    ) -> Sequence[Outcome]:
        """Run all tests in all environments.

        Args:
            tests: Test cases to run
            environments: Live environments keyed by kind

        Returns:
            One outcome per cell, in completion order

        Raises:
            ErrorList: If any cell could not be set up. Outcomes of the cells
                that did run are discarded in that case.

        """
        cells = build_matrix(tests, environments)
        if not cells:
            log.info("No tests to run")
            return []

        limit = self.concurrency or len(cells)
        log.info(
            "Running %d test(s) in %d environment(s) (%d cells, concurrency=%d)...",
            len(tests),
            len(environments),
            len(cells),
            limit,
        )
        semaphore = asyncio.Semaphore(limit)

        outcomes: list[Outcome] = []
        errors: ErrorList[FailedToOpenPage] | None = None
        with routed_output():
            tasks = [
                asyncio.create_task(self._run_bounded(cell, semaphore))
                for cell in cells
            ]
            try:
                for next_done in asyncio.as_completed(tasks):
                    try:
                        outcome = await next_done
                    except SetupError as exc:
                        log.error("%s", exc)
                        errors = _fold_error(errors, exc)
                        continue
                    _log_outcome(outcome)
                    outcomes.append(outcome)
            finally:
                for task in tasks:
                    task.cancel()
                # Cancelled cells close their pages before the streams are restored
                await asyncio.gather(*tasks, return_exceptions=True)

        log.info("Test execution completed")
        return _aggregate(outcomes, errors)

    async def _run_bounded(
        self, cell: MatrixCell, semaphore: asyncio.Semaphore
    ) -> Outcome:
        async with semaphore:
            return await run_cell(cell, self.timeout)


def _fold_error(
    errors: ErrorList[FailedToOpenPage] | None, exc: SetupError
) -> ErrorList[FailedToOpenPage]:
    if errors is None:
        return ErrorList([(exc.context, exc.error)])
    errors.push(exc.context, exc.error)
    return errors


def _aggregate(
    outcomes: list[Outcome], errors: ErrorList[FailedToOpenPage] | None
) -> Sequence[Outcome]:
    if errors is not None:
        log.error(
            "%d cell(s) could not be set up, discarding %d outcome(s)",
            len(errors),
            len(outcomes),
        )
        raise errors
    return outcomes


def _log_outcome(outcome: Outcome) -> None:
    log.info(
        "Test completed: test=%s environment=%s status=%s",
        outcome.test_name,
        outcome.environment.display_name,
        "ok" if outcome.passed else "failed",
    )
