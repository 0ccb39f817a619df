"""Backend manifest definition for the plugin system."""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass

from pydantic import BaseModel

from e2e_matrix.backends.base import EnvironmentBackend


@dataclass(frozen=True, kw_only=True)
class BackendManifest[ConfigT: BaseModel, PageT]:
    """Manifest describing an environment backend plugin.

    The manifest references the configuration class and the backend factory
    so that backends are only imported once selected by their key.
    """

    config_cls: type[ConfigT]
    backend_factory: Callable[
        [ConfigT], AbstractAsyncContextManager[EnvironmentBackend[PageT]]
    ]
