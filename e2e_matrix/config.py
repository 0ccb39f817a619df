"""Configuration of a test run."""

from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator

from e2e_matrix.backends.base import EnvironmentKind
from e2e_matrix.models.base import Model


class SubjectConfig(Model):
    """External server process the tests are exercised against."""

    command: Sequence[str] = Field(..., min_length=1, description="Program and args")
    cwd: Path | None = Field(default=None, description="Working directory")
    ready_url: str | None = Field(
        default=None, description="URL polled until the server answers"
    )
    ready_timeout: float = Field(default=30.0, gt=0)
    ready_interval: float = Field(default=0.25, gt=0)


class RunConfig(Model):
    """Complete configuration of a run."""

    tests: Sequence[str] = Field(..., min_length=1, description="Test module names")
    environments: Sequence[EnvironmentKind] = Field(
        default=tuple(EnvironmentKind), min_length=1
    )
    concurrency: int | None = Field(
        default=None, ge=1, description="Maximum cells run at once (None: all)"
    )
    timeout: float | None = Field(
        default=None, gt=0, description="Per-test timeout in seconds"
    )
    backend: str = "playwright"
    backend_config: dict[str, Any] = Field(default_factory=dict)
    subject: SubjectConfig | None = None

    @field_validator("environments")
    @classmethod
    def _deduplicate(cls, value: Sequence[EnvironmentKind]) -> Sequence[EnvironmentKind]:
        return tuple(dict.fromkeys(value))
