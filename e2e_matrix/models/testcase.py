"""Models describing test cases and the context handed to them."""

import io
from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import Any, Protocol

from e2e_matrix.backends.base import EnvironmentKind


@dataclass(frozen=True, kw_only=True)
class TestContext[PageT]:
    """Everything a test body gets to work with for a single execution."""

    __test__ = False

    page: PageT
    environment: EnvironmentKind
    output: io.StringIO = field(default_factory=io.StringIO, repr=False)


class TestBody(Protocol):
    """Async callable implementing a test.

    Returning normally means success. Raising an exception reports a failure,
    and `SystemExit` is treated as an abort of the test.
    """

    __test__ = False

    def __call__(self, ctx: TestContext[Any], /) -> Awaitable[None]:
        """Run the test against the given context."""


@dataclass(frozen=True, kw_only=True)
class TestCase:
    """A named test body."""

    __test__ = False

    name: str
    body: TestBody = field(compare=False)
