"""Shared fixtures for unit tests."""

import importlib
import sys
import textwrap
import uuid
from collections.abc import Iterator
from pathlib import Path
from typing import Protocol

import pytest


class WriteModuleFn(Protocol):
    """Protocol for test module creation function."""

    def __call__(self, source: str) -> str:
        """Write a module with the given source and return its name."""


@pytest.fixture
def write_module(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Iterator[WriteModuleFn]:
    """Return a function writing importable modules under a unique name."""
    monkeypatch.syspath_prepend(str(tmp_path))
    written: list[str] = []

    def _write(source: str) -> str:
        name = f"e2e_suite_{uuid.uuid4().hex}"
        (tmp_path / f"{name}.py").write_text(textwrap.dedent(source))
        written.append(name)
        importlib.invalidate_caches()
        return name

    yield _write

    for name in written:
        sys.modules.pop(name, None)
