"""Construction of the test x environment execution matrix."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from e2e_matrix.backends.base import Environment, EnvironmentKind
from e2e_matrix.models.testcase import TestCase


@dataclass(frozen=True, kw_only=True)
class MatrixCell:
    """Single matrix cell: one test paired with one live environment."""

    test: TestCase
    environment: Environment[Any]

    @property
    def kind(self) -> EnvironmentKind:
        """Kind of the cell's environment."""
        return self.environment.kind


def build_matrix(
    tests: Sequence[TestCase],
    environments: Mapping[EnvironmentKind, Environment[Any]],
) -> Sequence[MatrixCell]:
    """Pair every test with every environment.

    Tests form the outer loop and environments the inner one, in the order
    given, so the same inputs always produce the same cell order.
    """
    return [
        MatrixCell(test=test, environment=environment)
        for test in tests
        for environment in environments.values()
    ]
