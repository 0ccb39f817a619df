"""Tests for test orchestrator."""

import asyncio
import logging
import sys
from collections.abc import Sequence

import pytest

from e2e_matrix.backends.base import EnvironmentKind
from e2e_matrix.errors import ErrorList, FailedToOpenPage, TestAborted
from e2e_matrix.models.result import Outcome
from e2e_matrix.models.testcase import TestCase, TestContext
from e2e_matrix.orchestrator import TestOrchestrator
from e2e_matrix.reporter import exit_code, format_report, format_summary
from e2e_matrix.testing.fakes import FakeEnvironment, FakePage

ALL_KINDS = tuple(EnvironmentKind)


async def _passes(ctx: TestContext[FakePage]) -> None:
    pass


def environments_for(
    kinds: Sequence[EnvironmentKind] = ALL_KINDS,
    new_page_errors: dict[EnvironmentKind, Exception] | None = None,
) -> dict[EnvironmentKind, FakeEnvironment]:
    """Build fake environments keyed by kind."""
    errors = new_page_errors or {}
    return {
        kind: FakeEnvironment(kind=kind, new_page_error=errors.get(kind))
        for kind in kinds
    }


def pairs(outcomes: Sequence[Outcome]) -> set[tuple[str, EnvironmentKind, bool]]:
    """Reduce outcomes to comparable (test, environment, passed) triples."""
    return {(o.test_name, o.environment, o.passed) for o in outcomes}


@pytest.fixture
def orchestrator() -> TestOrchestrator:
    """Create orchestrator without concurrency limit."""
    return TestOrchestrator()


async def test_returns_empty_when_no_tests(orchestrator: TestOrchestrator) -> None:
    """Returns empty list when there is nothing to run."""
    environments = environments_for()

    assert await orchestrator.run_tests([], environments) == []
    assert all(not env.pages for env in environments.values())


async def test_runs_every_test_in_every_environment(
    orchestrator: TestOrchestrator,
) -> None:
    """Produces exactly one outcome per test and environment."""
    tests = [TestCase(name=name, body=_passes) for name in ("a", "b")]

    outcomes = await orchestrator.run_tests(tests, environments_for())

    assert len(outcomes) == 6
    assert pairs(outcomes) == {
        (name, kind, True) for name in ("a", "b") for kind in EnvironmentKind
    }


async def test_runs_cells_concurrently_by_default(
    orchestrator: TestOrchestrator,
) -> None:
    """All cells are in flight at the same time when unbounded."""
    total = 6
    arrived = 0
    all_arrived = asyncio.Event()

    async def rendezvous(ctx: TestContext[FakePage]) -> None:
        nonlocal arrived
        arrived += 1
        if arrived == total:
            all_arrived.set()
        await all_arrived.wait()

    tests = [TestCase(name=name, body=rendezvous) for name in ("a", "b")]

    async with asyncio.timeout(5):
        outcomes = await orchestrator.run_tests(tests, environments_for())

    assert all(outcome.passed for outcome in outcomes)


async def test_respects_concurrency_limit() -> None:
    """Never runs more cells at once than the configured limit."""
    active = 0
    peak = 0

    async def tracked(ctx: TestContext[FakePage]) -> None:
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await asyncio.sleep(0.01)
        active -= 1

    tests = [TestCase(name=name, body=tracked) for name in ("a", "b", "c")]

    outcomes = await TestOrchestrator(concurrency=2).run_tests(
        tests, environments_for()
    )

    assert len(outcomes) == 9
    assert peak == 2


async def test_collects_in_completion_order(orchestrator: TestOrchestrator) -> None:
    """Outcomes arrive in completion order, not submission order."""

    async def slow(ctx: TestContext[FakePage]) -> None:
        await asyncio.sleep(0.05)

    tests = [TestCase(name="slow", body=slow), TestCase(name="fast", body=_passes)]

    outcomes = await orchestrator.run_tests(
        tests, environments_for([EnvironmentKind.CHROMIUM])
    )

    assert [outcome.test_name for outcome in outcomes] == ["fast", "slow"]


async def test_abort_does_not_affect_siblings(orchestrator: TestOrchestrator) -> None:
    """A test aborting is contained in its own outcome."""

    async def aborts(ctx: TestContext[FakePage]) -> None:
        sys.exit("gave up")

    tests = [TestCase(name="aborts", body=aborts), TestCase(name="ok", body=_passes)]

    outcomes = await orchestrator.run_tests(tests, environments_for())

    assert len(outcomes) == 6
    failed = [o for o in outcomes if not o.passed]
    assert {o.test_name for o in failed} == {"aborts"}
    assert all(isinstance(o.error, TestAborted) for o in failed)
    assert all(str(o.error) == "gave up" for o in failed)


async def test_output_is_isolated_between_cells(
    orchestrator: TestOrchestrator,
) -> None:
    """Each outcome only holds what its own execution printed."""

    async def chatty(ctx: TestContext[FakePage]) -> None:
        for i in range(3):
            print(f"{ctx.environment}-{i}")
            await asyncio.sleep(0)

    outcomes = await orchestrator.run_tests(
        [TestCase(name="chatty", body=chatty)], environments_for()
    )

    for outcome in outcomes:
        kind = outcome.environment.value
        assert outcome.output == f"{kind}-0\n{kind}-1\n{kind}-2\n".encode()


async def test_setup_failure_overrides_passing_outcomes(
    orchestrator: TestOrchestrator,
) -> None:
    """One cell failing setup turns the run into an error list."""
    cause = RuntimeError("no page")
    environments = environments_for(
        [EnvironmentKind.CHROMIUM, EnvironmentKind.FIREFOX],
        new_page_errors={EnvironmentKind.FIREFOX: cause},
    )

    with pytest.raises(ErrorList) as exc_info:
        await orchestrator.run_tests(
            [TestCase(name="suite.a", body=_passes)], environments
        )

    assert list(exc_info.value) == [
        (FailedToOpenPage(test_name="suite.a", kind=EnvironmentKind.FIREFOX), cause)
    ]
    assert environments[EnvironmentKind.CHROMIUM].pages[0].closed


async def test_aggregates_every_setup_failure(orchestrator: TestOrchestrator) -> None:
    """All cells are attempted and every setup failure is reported."""
    environments = environments_for(
        [EnvironmentKind.WEBKIT],
        new_page_errors={EnvironmentKind.WEBKIT: RuntimeError("no page")},
    )
    tests = [TestCase(name=name, body=_passes) for name in ("a", "b", "c")]

    with pytest.raises(ErrorList) as exc_info:
        await orchestrator.run_tests(tests, environments)

    assert len(exc_info.value) == 3
    assert {context.test_name for context, _ in exc_info.value} == {"a", "b", "c"}


async def test_repeated_runs_give_same_outcomes(
    orchestrator: TestOrchestrator,
) -> None:
    """Deterministic tests give the same outcomes on every run."""

    async def fails_in_webkit(ctx: TestContext[FakePage]) -> None:
        assert ctx.environment != EnvironmentKind.WEBKIT

    tests = [
        TestCase(name="a", body=_passes),
        TestCase(name="b", body=fails_in_webkit),
    ]

    first = await orchestrator.run_tests(tests, environments_for())
    second = await orchestrator.run_tests(tests, environments_for())

    assert pairs(first) == pairs(second)


async def test_logs_each_completed_test(
    orchestrator: TestOrchestrator, caplog: pytest.LogCaptureFixture
) -> None:
    """Logs every outcome as it completes."""
    with caplog.at_level(logging.INFO):
        await orchestrator.run_tests(
            [TestCase(name="suite.a", body=_passes)],
            environments_for([EnvironmentKind.CHROMIUM]),
        )

    assert (
        "Test completed: test=suite.a environment=Chromium status=ok" in caplog.text
    )


async def test_two_by_two_with_one_failure(orchestrator: TestOrchestrator) -> None:
    """Two tests in two environments, one failing once, reports one error."""

    async def fails_in_firefox(ctx: TestContext[FakePage]) -> None:
        assert ctx.environment != EnvironmentKind.FIREFOX, "broken in firefox"

    tests = [
        TestCase(name="a", body=_passes),
        TestCase(name="b", body=fails_in_firefox),
    ]

    outcomes = await orchestrator.run_tests(
        tests, environments_for([EnvironmentKind.CHROMIUM, EnvironmentKind.FIREFOX])
    )
    report = format_report(outcomes)

    assert len(outcomes) == 4
    assert report.count("[OK]") == 3
    assert report.count("[FAILED]") == 1
    assert "b in Firefox...\t[FAILED]" in report
    assert format_summary(outcomes) == "1 errors"
    assert exit_code(outcomes) == 1


class FatalInterruption(BaseException):
    """Interruption outside the Exception hierarchy."""


async def test_fatal_interruption_does_not_affect_siblings(
    orchestrator: TestOrchestrator,
) -> None:
    """A BaseException from one body is contained in its own outcomes."""

    async def interrupted(ctx: TestContext[FakePage]) -> None:
        raise FatalInterruption("boom")

    tests = [
        TestCase(name="interrupted", body=interrupted),
        TestCase(name="ok", body=_passes),
    ]
    environments = environments_for()

    outcomes = await orchestrator.run_tests(tests, environments)

    assert len(outcomes) == 6
    assert pairs(outcomes) == {
        (name, kind, name == "ok")
        for name in ("interrupted", "ok")
        for kind in EnvironmentKind
    }
    failed = [o for o in outcomes if not o.passed]
    assert all(isinstance(o.error, TestAborted) for o in failed)
    assert all(str(o.error) == "boom" for o in failed)
    assert all(
        page.closed for env in environments.values() for page in env.pages
    )


async def test_cancelled_run_closes_open_pages(
    orchestrator: TestOrchestrator,
) -> None:
    """Cancelling the run cancels every cell and closes their pages."""
    started = asyncio.Event()

    async def hangs(ctx: TestContext[FakePage]) -> None:
        started.set()
        await asyncio.Event().wait()

    environments = environments_for([EnvironmentKind.CHROMIUM])
    run = asyncio.create_task(
        orchestrator.run_tests([TestCase(name="hangs", body=hangs)], environments)
    )
    await started.wait()

    run.cancel()
    with pytest.raises(asyncio.CancelledError):
        await run

    assert environments[EnvironmentKind.CHROMIUM].pages[0].closed
