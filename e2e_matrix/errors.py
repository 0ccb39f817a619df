"""Errors raised while preparing and running the test matrix."""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from e2e_matrix.backends.base import EnvironmentKind

UNKNOWN_ERROR = "Unknown error"


class ErrorList[C](Exception):
    """Non-empty, ordered collection of independent (context, error) failures."""

    def __init__(self, entries: Iterable[tuple[C, BaseException]]) -> None:
        self.entries: list[tuple[C, BaseException]] = list(entries)
        if not self.entries:
            raise ValueError("ErrorList requires at least one error")
        super().__init__(self.entries)

    def push(self, context: C, error: BaseException) -> None:
        """Append another failure."""
        self.entries.append((context, error))

    def extend(self, entries: Iterable[tuple[C, BaseException]]) -> None:
        """Append several failures, keeping their order."""
        self.entries.extend(entries)

    def __iter__(self) -> Iterator[tuple[C, BaseException]]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __str__(self) -> str:
        lines = ["ErrorList:"]
        lines.extend(f"\t- {context}: {error}" for context, error in self.entries)
        return "\n".join(lines)


@dataclass(frozen=True)
class FailedToInitialize:
    """An environment could not be brought up."""

    kind: EnvironmentKind

    def __str__(self) -> str:
        return f"Failed to initialize {self.kind.display_name}"


@dataclass(frozen=True)
class FailedToClose:
    """An environment could not be shut down."""

    kind: EnvironmentKind

    def __str__(self) -> str:
        return f"Failed to close {self.kind.display_name}"


@dataclass(frozen=True, kw_only=True)
class FailedToOpenPage:
    """A page for one test execution could not be opened."""

    test_name: str
    kind: EnvironmentKind

    def __str__(self) -> str:
        return f"Failed to open page in {self.kind.display_name} of {self.test_name}"


class SetupError(Exception):
    """Raised by the runner when a cell cannot be prepared."""

    def __init__(self, context: FailedToOpenPage, error: BaseException) -> None:
        super().__init__(f"{context}: {error}")
        self.context = context
        self.error = error


class TestAborted(Exception):
    """A test body aborted instead of raising an Exception, recovered as a failure."""

    __test__ = False

    def __init__(self, message: str = UNKNOWN_ERROR) -> None:
        super().__init__(message)
        self.message = message

    @classmethod
    def from_exit(cls, exc: SystemExit) -> "TestAborted":
        """Build from the abort, keeping its payload only when it is a string."""
        if isinstance(exc.code, str):
            return cls(exc.code)
        return cls()

    @classmethod
    def from_interrupt(cls, exc: BaseException) -> "TestAborted":
        """Build from any other fatal interruption, keeping a string first argument."""
        if exc.args and isinstance(exc.args[0], str):
            return cls(exc.args[0])
        return cls()

