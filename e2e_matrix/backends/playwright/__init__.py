"""Playwright backend module."""

from e2e_matrix.backends.playwright.backend import (
    PlaywrightBackend,
    PlaywrightEnvironment,
)
from e2e_matrix.backends.playwright.config import PlaywrightConfig
from e2e_matrix.backends.playwright.manifest import playwright_manifest

__all__ = [
    "PlaywrightBackend",
    "PlaywrightConfig",
    "PlaywrightEnvironment",
    "playwright_manifest",
]
