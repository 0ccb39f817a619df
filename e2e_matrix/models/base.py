"""Shared pydantic base for run settings."""

from pydantic import BaseModel, ConfigDict


class Model(BaseModel):
    """Immutable settings model that rejects unknown keys."""

    model_config = ConfigDict(frozen=True, extra="forbid")
