"""Execution of a single matrix cell."""

import asyncio
import logging
from typing import Any

from e2e_matrix.capture import capture_output
from e2e_matrix.errors import FailedToOpenPage, SetupError, TestAborted
from e2e_matrix.matrix import MatrixCell
from e2e_matrix.models.result import Outcome
from e2e_matrix.models.testcase import TestBody, TestContext

log = logging.getLogger(__name__)


async def run_cell(cell: MatrixCell, timeout: float | None = None) -> Outcome:
    """Run one test in one environment.

    Args:
        cell: The test/environment pair to execute
        timeout: Optional limit in seconds for the test body

    Returns:
        The outcome, failed if the body raised, aborted or timed out

    Raises:
        SetupError: If no page could be opened for the test

    """
    test_name = cell.test.name
    try:
        page = await cell.environment.new_page()
    except Exception as exc:
        raise SetupError(
            FailedToOpenPage(test_name=test_name, kind=cell.kind), exc
        ) from exc

    ctx = TestContext(page=page, environment=cell.kind)
    log.debug("Running %s in %s", test_name, cell.kind.display_name)
    try:
        error = await invoke_test(cell.test.body, ctx, timeout)
    finally:
        close_error = await _close_page(cell, page)
    if error is None:
        error = close_error

    return Outcome(
        test_name=test_name,
        environment=cell.kind,
        error=error,
        output=ctx.output.getvalue().encode(),
    )


async def invoke_test(
    body: TestBody, ctx: TestContext[Any], timeout: float | None = None
) -> Exception | None:
    """Call a test body with its output captured and failures contained.

    Keyboard interrupts and cancellation of the calling task propagate, every
    other BaseException is recovered as a TestAborted.

    Returns:
        None on success, otherwise the error the body failed with

    """
    with capture_output(ctx.output):
        try:
            async with asyncio.timeout(timeout):
                await body(ctx)
        except Exception as exc:
            return exc
        except SystemExit as exc:
            return TestAborted.from_exit(exc)
        except (KeyboardInterrupt, asyncio.CancelledError):
            raise
        except BaseException as exc:
            return TestAborted.from_interrupt(exc)
    return None


async def _close_page(cell: MatrixCell, page: Any) -> Exception | None:
    try:
        await cell.environment.close_page(page)
    except Exception as exc:
        log.warning(
            "Failed to close page of %s in %s: %s",
            cell.test.name,
            cell.kind.display_name,
            exc,
        )
        return exc
    return None
