"""Request and response models for nodes."""

from __future__ import annotations

import datetime as dt
import uuid
from typing import Any, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field


def normalize_tags(tags: Optional[Iterable[str]]) -> list[str]:
    """Trim, lowercase, drop blanks and duplicates. Sorted, since order carries no meaning."""
    if not tags:
        return []
    return sorted({t.strip().lower() for t in tags if t and t.strip()})


class NodeIn(BaseModel):
    """Create payload. A missing label is rejected by the repository, not by parsing."""

    label: Optional[str] = Field(None, description="Human-readable label")
    data: Any = Field(default_factory=dict, description="Arbitrary JSON value")
    tags: Optional[list[str]] = Field(default_factory=list, description="Tags (case-insensitive); null means none")


class NodeUpdate(BaseModel):
    """Partial update: only fields present in the request are applied.

    Example:
        NodeUpdate(label="Renamed").changes() == {"label": "Renamed"}
        NodeUpdate().changes() == {}
    """

    label: Optional[str] = None
    data: Any = None
    tags: Optional[list[str]] = None

    def changes(self) -> dict[str, Any]:
        present = self.model_dump(exclude_unset=True)
        # tags: null means "leave as is"; data: null is a legitimate JSON value
        if present.get("tags", ...) is None:
            present.pop("tags")
        return present


class NodeOut(BaseModel):
    id: uuid.UUID
    label: str
    data: Any = None
    tags: list[str] = Field(default_factory=list)
    created_at: dt.datetime
    updated_at: Optional[dt.datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SearchRequest(BaseModel):
    query: str = ""
    limit: int = Field(default=50, ge=1)
