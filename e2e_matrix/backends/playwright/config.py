"""Configuration for the Playwright backend."""

from collections.abc import Sequence

from pydantic import BaseModel, Field


class PlaywrightConfig(BaseModel):
    """Configuration for the Playwright backend."""

    headless: bool = True
    base_url: str | None = None
    slow_mo: float | None = Field(default=None, ge=0)
    launch_args: Sequence[str] = Field(default_factory=tuple)
    # Download the browser binaries with `playwright install` before launching
    install_browsers: bool = False
