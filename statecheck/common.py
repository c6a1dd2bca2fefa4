"""
statecheck — Common Primitives

Shared base model and utilities.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field
from ulid import ULID


def new_id() -> str:
    """Generate a new ULID string. Time-sortable, globally unique."""
    return str(ULID())


def utc_now() -> datetime:
    """Current UTC time, timezone-aware."""
    return datetime.now(timezone.utc)


class StatecheckModel(BaseModel):
    """Base model for serializable statecheck records."""

    model_config = {"populate_by_name": True, "from_attributes": True}


class Identified(StatecheckModel):
    """Mixin for models with ULID IDs."""

    id: str = Field(default_factory=new_id)


class Timestamped(StatecheckModel):
    """Mixin for models with creation timestamps."""

    created_at: datetime = Field(default_factory=utc_now)
