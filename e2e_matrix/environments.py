"""Bring-up and shutdown of the configured environments."""

import asyncio
import logging
from collections.abc import AsyncGenerator, Mapping, Sequence
from contextlib import asynccontextmanager
from typing import Any

from e2e_matrix.backends.base import Environment, EnvironmentBackend, EnvironmentKind
from e2e_matrix.errors import ErrorList, FailedToClose, FailedToInitialize

log = logging.getLogger(__name__)


async def initialize_environments[PageT](
    backend: EnvironmentBackend[PageT],
    kinds: Sequence[EnvironmentKind],
) -> Mapping[EnvironmentKind, Environment[PageT]]:
    """Launch every requested environment.

    Every kind is attempted even if another one fails. Environments that did
    come up are closed again before failures are reported.

    Args:
        backend: Backend used to launch environments
        kinds: Environment kinds to launch

    Returns:
        Live environments keyed by kind, in the order of kinds

    Raises:
        ErrorList: One FailedToInitialize entry per kind that failed

    """
    log.info("Initializing %d environment(s)...", len(kinds))
    results = await asyncio.gather(
        *(backend.launch(kind) for kind in kinds), return_exceptions=True
    )

    environments: dict[EnvironmentKind, Environment[PageT]] = {}
    failures: list[tuple[FailedToInitialize | FailedToClose, BaseException]] = []
    for kind, result in zip(kinds, results, strict=True):
        if isinstance(result, Environment):
            environments[kind] = result
        elif isinstance(result, Exception):
            log.error("Failed to initialize %s: %s", kind.display_name, result)
            failures.append((FailedToInitialize(kind), result))
        else:
            raise result

    if failures:
        if environments:
            try:
                await close_environments(environments)
            except ErrorList as close_errors:
                failures.extend(close_errors)
        raise ErrorList(failures)

    log.info(
        "Environments ready: %s",
        ", ".join(kind.display_name for kind in environments),
    )
    return environments


async def close_environments(
    environments: Mapping[EnvironmentKind, Environment[Any]],
) -> None:
    """Close all environments, reporting every one that failed to close.

    Raises:
        ErrorList: One FailedToClose entry per environment that failed

    """
    kinds = list(environments)
    results = await asyncio.gather(
        *(environments[kind].close() for kind in kinds), return_exceptions=True
    )

    failures = [
        (FailedToClose(kind), result)
        for kind, result in zip(kinds, results, strict=True)
        if isinstance(result, BaseException)
    ]
    if failures:
        raise ErrorList(failures)


@asynccontextmanager
async def open_environments[PageT](
    backend: EnvironmentBackend[PageT],
    kinds: Sequence[EnvironmentKind],
) -> AsyncGenerator[Mapping[EnvironmentKind, Environment[PageT]], None]:
    """Launch environments for the duration of the block.

    Close failures are appended to an ErrorList raised by the block, otherwise
    they are raised on their own.
    """
    environments = await initialize_environments(backend, kinds)
    failure: ErrorList[Any] | None = None
    try:
        yield environments
    except ErrorList as errors:
        failure = errors
        raise
    finally:
        try:
            await close_environments(environments)
        except ErrorList as close_errors:
            if failure is None:
                raise
            failure.extend(close_errors)
