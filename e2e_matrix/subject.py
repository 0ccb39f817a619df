"""Lifecycle of the process under test."""

import asyncio
import logging
import shlex
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import aiohttp

from e2e_matrix.config import SubjectConfig

log = logging.getLogger(__name__)


class SubjectStartError(RuntimeError):
    """Raised when the process under test cannot be started or never gets ready."""


@asynccontextmanager
async def running_subject(
    config: SubjectConfig,
) -> AsyncGenerator[asyncio.subprocess.Process, None]:
    """Run the subject process for the duration of the block.

    The process is killed on every exit path. A failure to kill it propagates.
    """
    log.info("Starting subject process: %s", shlex.join(config.command))
    try:
        process = await asyncio.create_subprocess_exec(
            *config.command,
            cwd=config.cwd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except OSError as exc:
        raise SubjectStartError(f"Failed to start subject process: {exc}") from exc

    try:
        if config.ready_url is not None:
            await wait_until_ready(
                process, config.ready_url, config.ready_timeout, config.ready_interval
            )
        yield process
    finally:
        await terminate(process)


async def terminate(process: asyncio.subprocess.Process) -> None:
    """Kill the process unless it already exited, and reap it."""
    if process.returncode is None:
        log.info("Stopping subject process (pid=%d)", process.pid)
        process.kill()
    await process.wait()
    log.info("Subject process stopped with status %s", process.returncode)


async def wait_until_ready(
    process: asyncio.subprocess.Process,
    url: str,
    timeout: float = 30,
    poll_interval: float = 0.25,
) -> None:
    """Poll url until the subject answers without a server error.

    Raises:
        SubjectStartError: If the process exits or the timeout is exceeded

    """
    deadline = asyncio.get_event_loop().time() + timeout

    async with aiohttp.ClientSession() as session:
        while True:
            if process.returncode is not None:
                raise SubjectStartError(
                    f"Subject process exited with status {process.returncode}"
                )

            try:
                async with session.get(url) as response:
                    if response.status < 500:
                        log.info("Subject ready at %s", url)
                        return
                    log.debug("Subject not ready: %s answered %d", url, response.status)
            except aiohttp.ClientError as exc:
                log.debug("Subject not ready: %s", exc)

            if asyncio.get_event_loop().time() >= deadline:
                raise SubjectStartError(
                    f"Subject did not become ready at {url} within {timeout} seconds"
                )

            await asyncio.sleep(poll_interval)
