"""Declaration and discovery of end-to-end tests."""

import importlib
import logging
from collections.abc import Callable, Sequence
from types import ModuleType
from typing import overload

from e2e_matrix.models.testcase import TestBody, TestCase

log = logging.getLogger(__name__)

TEST_CASE_ATTRIBUTE = "__e2e_test_case__"


class DuplicateTestError(Exception):
    """Raised when two collected tests share a name."""


@overload
def e2e_test(body: TestBody, /) -> TestBody: ...


@overload
def e2e_test(*, name: str | None = None) -> Callable[[TestBody], TestBody]: ...


def e2e_test(
    body: TestBody | None = None, /, *, name: str | None = None
) -> TestBody | Callable[[TestBody], TestBody]:
    """Mark an async function as an end-to-end test.

    Usable bare (`@e2e_test`) or with an explicit display name
    (`@e2e_test(name="login")`). The default name is the function's module
    and qualified name.
    """

    def decorate(fn: TestBody) -> TestBody:
        test_name = name or f"{fn.__module__}.{fn.__qualname__}"
        setattr(fn, TEST_CASE_ATTRIBUTE, TestCase(name=test_name, body=fn))
        return fn

    if body is not None:
        return decorate(body)
    return decorate


def declared_tests(module: ModuleType) -> Sequence[TestCase]:
    """Return the tests defined in a module, in definition order.

    Tests imported from other modules are skipped.
    """
    return [
        getattr(value, TEST_CASE_ATTRIBUTE)
        for value in vars(module).values()
        if hasattr(value, TEST_CASE_ATTRIBUTE)
        and getattr(value, "__module__", None) == module.__name__
    ]


def collect_tests(module_names: Sequence[str]) -> Sequence[TestCase]:
    """Import modules and collect the tests they declare.

    Raises:
        DuplicateTestError: If two tests have the same name

    """
    tests: list[TestCase] = []
    seen: set[str] = set()
    for module_name in module_names:
        module = importlib.import_module(module_name)
        found = declared_tests(module)
        log.info("Collected %d test(s) from %s", len(found), module_name)
        for test in found:
            if test.name in seen:
                raise DuplicateTestError(f"Test '{test.name}' is declared twice")
            seen.add(test.name)
            tests.append(test)
    return tests
