"""Abstract base classes for browser environment backends."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import StrEnum


class EnvironmentKind(StrEnum):
    """Browser engines a test can be executed against."""

    CHROMIUM = "chromium"
    FIREFOX = "firefox"
    WEBKIT = "webkit"

    @property
    def display_name(self) -> str:
        """Human-readable engine name used in reports."""
        return self.value.capitalize()


@dataclass(frozen=True, kw_only=True)
class Environment[PageT](ABC):
    """A live execution environment able to hand out isolated pages.

    Generic type PageT is whatever object the backend gives to test bodies,
    e.g. a Playwright page. Every call to new_page must return a page living
    in its own isolated browser context, never shared with another test.
    """

    kind: EnvironmentKind

    @abstractmethod
    async def new_page(self) -> PageT:
        """Open a fresh page in a new isolated context."""

    @abstractmethod
    async def close_page(self, page: PageT) -> None:
        """Release a page obtained from new_page, together with its context."""

    @abstractmethod
    async def close(self) -> None:
        """Shut down the environment."""


@dataclass(frozen=True, kw_only=True)
class EnvironmentBackend[PageT](ABC):
    """Abstract base for the capability bringing environments up."""

    @abstractmethod
    async def launch(self, kind: EnvironmentKind) -> Environment[PageT]:
        """Bring up the environment of the given kind.

        Args:
            kind: Browser engine to launch

        Returns:
            The live environment

        """
