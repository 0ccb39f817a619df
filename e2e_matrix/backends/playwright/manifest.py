"""Playwright backend manifest."""

from e2e_matrix.backends.manifest import BackendManifest
from e2e_matrix.backends.playwright.backend import PlaywrightBackend
from e2e_matrix.backends.playwright.config import PlaywrightConfig

playwright_manifest = BackendManifest(
    config_cls=PlaywrightConfig,
    backend_factory=PlaywrightBackend.from_config,
)
