from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, Index, String, Text
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.orm import Mapped, mapped_column

from ..db.base import Base, TimestampMixin, UUIDMixin

# JSONB / TEXT[] on PostgreSQL, JSON text elsewhere (SQLite in tests)
JsonData = JSON().with_variant(JSONB(), "postgresql")
TagList = JSON().with_variant(ARRAY(String), "postgresql")


class Node(UUIDMixin, TimestampMixin, Base):
    """A labeled JSON document with tags.

    - UUID primary key via UUIDMixin
    - created_at/updated_at via TimestampMixin
    - GIN and full-text indexes are PostgreSQL-only and live in db.schema
    """

    __tablename__ = "nodes"
    __table_args__ = (
        Index("idx_nodes_label", "label"),
        Index("idx_nodes_created_at", "created_at"),
    )

    label: Mapped[str] = mapped_column(Text, nullable=False)
    data: Mapped[Any] = mapped_column(JsonData, nullable=False, default=dict)
    tags: Mapped[list[str]] = mapped_column(TagList, nullable=False, default=list)

    def __repr__(self) -> str:
        return f"Node(id={self.id!s}, label={self.label!r})"
