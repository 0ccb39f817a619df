"""Discovery of environment backends registered as entry points."""

from collections.abc import Sequence
from importlib.metadata import entry_points
from typing import Any

from e2e_matrix.backends.manifest import BackendManifest

ENTRY_POINT_GROUP = "e2e_matrix.backends"


class BackendNotFoundError(Exception):
    """Raised when no backend is registered under the requested key."""


def available_backends() -> Sequence[str]:
    """Keys of all installed backends, sorted."""
    return sorted(entry.name for entry in entry_points(group=ENTRY_POINT_GROUP))


def load_backend_manifest(key: str) -> BackendManifest[Any, Any]:
    """Import the manifest of the backend registered under key.

    Raises:
        BackendNotFoundError: If no backend with the given key is installed

    """
    matches = entry_points(group=ENTRY_POINT_GROUP, name=key)
    if not matches:
        raise BackendNotFoundError(
            f"Backend '{key}' not found. Available backends: {available_backends()}"
        )

    manifest: BackendManifest[Any, Any] = next(iter(matches)).load()
    return manifest
