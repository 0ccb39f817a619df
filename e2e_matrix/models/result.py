"""Models for test execution outcomes."""

from dataclasses import dataclass

from e2e_matrix.backends.base import EnvironmentKind


@dataclass(frozen=True, kw_only=True)
class Outcome:
    """Result of running one test in one environment.

    Aborted test bodies are represented like any other failure: the recovered
    abort is stored as the error.
    """

    test_name: str
    environment: EnvironmentKind
    error: Exception | None = None
    output: bytes = b""

    @property
    def passed(self) -> bool:
        """Whether the test body completed without error."""
        return self.error is None

    @property
    def sort_key(self) -> tuple[str, int]:
        """Key ordering outcomes by test name, then environment."""
        return self.test_name, list(EnvironmentKind).index(self.environment)
