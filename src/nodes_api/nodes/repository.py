from __future__ import annotations

import logging
import uuid
from typing import Any, Awaitable, Callable, Optional, TypeVar

from sqlalchemy import ColumnElement, Text, any_, case, cast, column, delete, func, literal, literal_column, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.base import utcnow
from ..db.engine import DBEngine
from ..exceptions import NotFound, StoreError, StoreUnavailable, ValidationError
from ..resilience import RetryConfig, RetryExhaustedError, call_with_retry, is_transient
from .models import Node
from .schemas import NodeOut, NodeUpdate, normalize_tags

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_SEARCH_LIMIT = 50

# unquoted literal so PostgreSQL resolves it as regconfig
_TS_CONFIG = literal_column("'english'")


def _require_label(label: Optional[str]) -> str:
    if label is None or not label.strip():
        raise ValidationError("Label is required", field_name="label", field_value=label)
    return label


def _coerce_id(node_id: uuid.UUID | str) -> Optional[uuid.UUID]:
    if isinstance(node_id, uuid.UUID):
        return node_id
    try:
        return uuid.UUID(str(node_id))
    except ValueError:
        return None


class NodeRepository:
    """CRUD and search over the nodes table.

    - Every public method is one transaction, retried on transient store errors.
    - Domain failures raise ValidationError / NotFound and are never retried.
    - Reads return NodeOut snapshots, detached from the session.
    """

    def __init__(self, engine: DBEngine, *, retry: Optional[RetryConfig] = None):
        self._engine = engine
        self._retry = retry or engine.settings.retry_config()

    @property
    def engine(self) -> DBEngine:
        return self._engine

    async def _run(self, operation: str, fn: Callable[[AsyncSession], Awaitable[T]]) -> T:
        async def attempt() -> T:
            async with self._engine.transaction() as session:
                return await fn(session)

        def on_retry(attempt_no: int, exc: BaseException) -> None:
            logger.warning(
                "Transient store error during %s (attempt %d/%d): %s",
                operation,
                attempt_no,
                self._retry.max_attempts,
                exc,
            )

        try:
            return await call_with_retry(
                attempt,
                config=self._retry,
                retry_on=(Exception,),
                retry_if=is_transient,
                on_retry=on_retry,
            )
        except RetryExhaustedError as exc:
            logger.error("Store unavailable during %s after %d attempts", operation, exc.attempts)
            raise StoreUnavailable(
                f"Store unavailable: {exc.last_exception}",
                operation=operation,
                attempts=exc.attempts,
            ) from exc.last_exception
        except SQLAlchemyError as exc:
            logger.error("Store error during %s: %s", operation, exc)
            raise StoreError(f"Store error: {exc}", operation=operation) from exc

    async def _load(self, session: AsyncSession, node_id: uuid.UUID | str) -> Node:
        key = _coerce_id(node_id)
        obj = await session.get(Node, key) if key is not None else None
        if obj is None:
            raise NotFound(node_id)
        return obj

    # ---------------------------------------------------------------- writes

    async def create(
        self,
        label: Optional[str],
        data: Any = None,
        tags: Optional[list[str]] = None,
    ) -> NodeOut:
        label = _require_label(label)
        values = {
            "id": uuid.uuid4(),
            "label": label,
            "data": {} if data is None else data,
            "tags": normalize_tags(tags),
            "created_at": utcnow(),
        }

        async def op(session: AsyncSession) -> NodeOut:
            obj = Node(**values)
            session.add(obj)
            await session.flush()
            # reload so the returned timestamps match what later reads see
            await session.refresh(obj)
            return NodeOut.model_validate(obj)

        node = await self._run("create", op)
        logger.info("Created node %s", node.id, extra={"node_id": node.id})
        return node

    async def update(self, node_id: uuid.UUID | str, changes: Optional[NodeUpdate] = None) -> NodeOut:
        fields = changes.changes() if changes is not None else {}
        if "label" in fields:
            _require_label(fields["label"])
        if "tags" in fields:
            fields["tags"] = normalize_tags(fields["tags"])

        async def op(session: AsyncSession) -> NodeOut:
            obj = await self._load(session, node_id)
            if not fields:
                return NodeOut.model_validate(obj)
            for key, value in fields.items():
                setattr(obj, key, value)
            obj.updated_at = utcnow()
            await session.flush()
            await session.refresh(obj)
            return NodeOut.model_validate(obj)

        node = await self._run("update", op)
        if fields:
            logger.info("Updated node %s (%s)", node.id, ", ".join(sorted(fields)), extra={"node_id": node.id})
        return node

    async def delete(self, node_id: uuid.UUID | str) -> None:
        key = _coerce_id(node_id)
        if key is None:
            raise NotFound(node_id)

        async def op(session: AsyncSession) -> int:
            res = await session.execute(delete(Node).where(Node.id == key))
            return int(res.rowcount or 0)

        if await self._run("delete", op) == 0:
            raise NotFound(node_id)
        logger.info("Deleted node %s", key, extra={"node_id": key})

    # ----------------------------------------------------------------- reads

    async def get(self, node_id: uuid.UUID | str) -> NodeOut:
        async def op(session: AsyncSession) -> NodeOut:
            return NodeOut.model_validate(await self._load(session, node_id))

        return await self._run("get", op)

    async def list(self) -> list[NodeOut]:
        return await self._recent(limit=None)

    async def _recent(self, *, limit: Optional[int]) -> list[NodeOut]:
        stmt = select(Node).order_by(Node.created_at.desc())
        if limit is not None:
            stmt = stmt.limit(limit)

        async def op(session: AsyncSession) -> list[NodeOut]:
            rows = (await session.execute(stmt)).scalars().all()
            return [NodeOut.model_validate(r) for r in rows]

        return await self._run("list", op)

    async def search(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> list[NodeOut]:
        if limit < 1:
            raise ValidationError("limit must be >= 1", field_name="limit", field_value=limit)
        needle = (query or "").strip()
        if not needle:
            return await self._recent(limit=limit)

        lowered = needle.lower()
        label_hit = func.lower(Node.label, type_=Text).contains(lowered, autoescape=True)
        data_hit = func.lower(cast(Node.data, Text), type_=Text).contains(lowered, autoescape=True)
        tag_hit = self._any_tag(lambda element: func.lower(element, type_=Text).contains(lowered, autoescape=True))

        if self._engine.dialect_name == "postgresql":
            tsquery = func.plainto_tsquery(_TS_CONFIG, needle)
            document = func.to_tsvector(_TS_CONFIG, Node.label.concat(" ").concat(cast(Node.data, Text)))
            fulltext_hit = document.op("@@")(tsquery)
            label_fulltext_hit = func.to_tsvector(_TS_CONFIG, Node.label).op("@@")(tsquery)
            where = label_hit | data_hit | tag_hit | fulltext_hit
            rank = case((label_hit, 0), (label_fulltext_hit, 1), else_=2)
        else:
            where = label_hit | data_hit | tag_hit
            rank = case((label_hit, 0), else_=1)

        stmt = select(Node).where(where).order_by(rank, Node.created_at.desc()).limit(limit)

        async def op(session: AsyncSession) -> list[NodeOut]:
            rows = (await session.execute(stmt)).scalars().all()
            return [NodeOut.model_validate(r) for r in rows]

        nodes = await self._run("search", op)
        logger.debug("Search %r matched %d node(s)", needle, len(nodes))
        return nodes

    async def find_by_tag(self, tag: str) -> list[NodeOut]:
        normalized = normalize_tags([tag])
        if not normalized:
            return []
        wanted = normalized[0]

        if self._engine.dialect_name == "postgresql":
            cond = literal(wanted) == any_(Node.tags)
        else:
            cond = self._any_tag(lambda element: element == wanted)

        stmt = select(Node).where(cond).order_by(Node.created_at.desc())

        async def op(session: AsyncSession) -> list[NodeOut]:
            rows = (await session.execute(stmt)).scalars().all()
            return [NodeOut.model_validate(r) for r in rows]

        return await self._run("find_by_tag", op)

    def _any_tag(self, predicate: Callable[[ColumnElement[str]], ColumnElement[bool]]) -> ColumnElement[bool]:
        """EXISTS over the individual elements of `tags`, one row per tag."""
        if self._engine.dialect_name == "postgresql":
            element = func.unnest(Node.tags, type_=Text).column_valued("tag")
            return select(element).where(predicate(element)).exists()
        elements = func.json_each(Node.tags).table_valued(column("value", Text))
        return select(elements.c.value).where(predicate(elements.c.value)).exists()
