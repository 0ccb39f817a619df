"""Rendering of run results and mapping to process exit codes."""

import textwrap
import traceback
from collections.abc import Sequence
from typing import Any

from e2e_matrix.errors import ErrorList, TestAborted
from e2e_matrix.models.result import Outcome

OUTPUT_HEADER = "   ----- TEST STDOUT -----   "


def format_error(error: BaseException) -> str:
    """Render the detail of a failed test."""
    if isinstance(error, TestAborted):
        return error.message
    return "".join(traceback.format_exception_only(error)).rstrip()


def format_outcome(outcome: Outcome) -> str:
    """Render one outcome, followed by its captured output if any."""
    name = f"{outcome.test_name} in {outcome.environment.display_name}..."
    if outcome.error is None:
        text = f"{name}\t[OK]"
    else:
        text = f"{name}\t[FAILED]\n{format_error(outcome.error)}"

    if outcome.output:
        captured = outcome.output.decode(errors="replace").rstrip("\n")
        text += f"\n{OUTPUT_HEADER}\n{textwrap.indent(captured, '    ')}"
    return text


def format_summary(outcomes: Sequence[Outcome]) -> str:
    """Render the trailing success or error count."""
    failures = sum(1 for outcome in outcomes if not outcome.passed)
    if failures:
        return f"{failures} errors"
    return f"{len(outcomes)} tests ran with success"


def format_report(outcomes: Sequence[Outcome]) -> str:
    """Render the full text report, ordered by test and environment."""
    lines = ["", "Summary:"]
    lines.extend(
        format_outcome(outcome)
        for outcome in sorted(outcomes, key=lambda outcome: outcome.sort_key)
    )
    lines.append(format_summary(outcomes))
    return "\n".join(lines)


def format_output(outcomes: Sequence[Outcome]) -> dict[str, Any]:
    """Format outcomes for JSON output."""
    results = [
        {
            "test": outcome.test_name,
            "environment": outcome.environment.value,
            "status": "ok" if outcome.passed else "failed",
            "message": None if outcome.error is None else format_error(outcome.error),
            "output": outcome.output.decode(errors="replace"),
        }
        for outcome in sorted(outcomes, key=lambda outcome: outcome.sort_key)
    ]
    passed = sum(1 for r in results if r["status"] == "ok")
    return {
        "total": len(results),
        "passed": passed,
        "failed": len(results) - passed,
        "results": results,
    }


def format_error_list(errors: ErrorList[Any]) -> str:
    """Render a run-level failure, one line per context."""
    return str(errors)


def format_error_output(errors: ErrorList[Any]) -> dict[str, Any]:
    """Format a run-level failure for JSON output."""
    return {
        "errors": [
            {"context": str(context), "error": str(error)}
            for context, error in errors
        ],
    }


def exit_code(outcomes: Sequence[Outcome]) -> int:
    """Return 0 when every outcome passed, 1 otherwise."""
    return 0 if all(outcome.passed for outcome in outcomes) else 1
