"""Playwright backend implementation."""

import asyncio
import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

from playwright.async_api import Browser, Page, Playwright, async_playwright

from e2e_matrix.backends.base import Environment, EnvironmentBackend, EnvironmentKind
from e2e_matrix.backends.playwright.config import PlaywrightConfig

log = logging.getLogger(__name__)


class BrowserInstallError(RuntimeError):
    """Raised when `playwright install` fails."""


@dataclass(frozen=True, kw_only=True)
class PlaywrightEnvironment(Environment[Page]):
    """A launched Playwright browser."""

    config: PlaywrightConfig
    browser: Browser = field(repr=False)

    async def new_page(self) -> Page:
        """Open a page inside a brand new browser context."""
        if self.config.base_url is not None:
            context = await self.browser.new_context(base_url=self.config.base_url)
        else:
            context = await self.browser.new_context()
        try:
            return await context.new_page()
        except BaseException:
            await context.close()
            raise

    async def close_page(self, page: Page) -> None:
        """Close the page's browser context."""
        await page.context.close()

    async def close(self) -> None:
        """Close the browser."""
        log.debug("Closing %s", self.kind.display_name)
        await self.browser.close()


@dataclass(frozen=True, kw_only=True)
class PlaywrightBackend(EnvironmentBackend[Page]):
    """Environment backend driving Chromium, Firefox and WebKit via Playwright."""

    config: PlaywrightConfig
    playwright: Playwright = field(repr=False)

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, config: PlaywrightConfig
    ) -> AsyncGenerator["PlaywrightBackend", None]:
        """Create backend with managed Playwright driver lifecycle."""
        async with async_playwright() as playwright:
            yield cls(config=config, playwright=playwright)

    async def launch(self, kind: EnvironmentKind) -> PlaywrightEnvironment:
        """Launch the browser for the given engine."""
        if self.config.install_browsers:
            await install_browser(kind)

        log.info(
            "Launching %s (headless=%s)", kind.display_name, self.config.headless
        )
        browser_type = getattr(self.playwright, kind.value)
        browser = await browser_type.launch(
            headless=self.config.headless,
            slow_mo=self.config.slow_mo,
            args=list(self.config.launch_args),
        )
        return PlaywrightEnvironment(kind=kind, config=self.config, browser=browser)


async def install_browser(kind: EnvironmentKind) -> None:
    """Download the browser binary for the given engine."""
    log.info("Installing %s browser binaries", kind.display_name)
    process = await asyncio.create_subprocess_exec(
        sys.executable,
        "-m",
        "playwright",
        "install",
        kind.value,
        stdout=asyncio.subprocess.DEVNULL,
        stderr=asyncio.subprocess.PIPE,
    )
    _, stderr = await process.communicate()

    if process.returncode != 0:
        raise BrowserInstallError(
            f"playwright install {kind.value} failed: {stderr.decode().strip()}"
        )
