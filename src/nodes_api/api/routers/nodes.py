"""REST endpoints for nodes.

Each endpoint maps 1:1 onto a NodeRepository operation; repository errors are
turned into status codes by the handlers in api.errors.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Query, Response, status

from ...nodes.repository import DEFAULT_SEARCH_LIMIT
from ...nodes.schemas import NodeIn, NodeOut, NodeUpdate, SearchRequest
from ..deps import ApiConfigDep, RepoDep

router = APIRouter(prefix="/api/nodes", tags=["nodes"])


@router.get("", response_model=list[NodeOut])
async def list_nodes(
    repo: RepoDep,
    api: ApiConfigDep,
    search: Optional[str] = Query(None, description="Substring / full-text query"),
    tag: Optional[str] = Query(None, description="Exact tag (case-insensitive)"),
    limit: int = Query(DEFAULT_SEARCH_LIMIT, ge=1, description="Max results for search"),
) -> list[NodeOut]:
    """List nodes, or filter them.

    Example:
        ```bash
        curl http://localhost:3000/api/nodes
        curl http://localhost:3000/api/nodes?tag=finance
        curl "http://localhost:3000/api/nodes?search=invoice&limit=10"
        ```
    """
    if tag:
        return await repo.find_by_tag(tag)
    if search:
        return await repo.search(search, limit=min(limit, api.max_search_limit))
    return await repo.list()


@router.post("", response_model=NodeOut, status_code=status.HTTP_201_CREATED)
async def create_node(payload: NodeIn, repo: RepoDep) -> NodeOut:
    return await repo.create(payload.label, payload.data, payload.tags)


@router.post("/search", response_model=list[NodeOut])
async def search_nodes(payload: SearchRequest, repo: RepoDep, api: ApiConfigDep) -> list[NodeOut]:
    return await repo.search(payload.query, limit=min(payload.limit, api.max_search_limit))


@router.get("/{node_id}", response_model=NodeOut)
async def get_node(node_id: str, repo: RepoDep) -> NodeOut:
    return await repo.get(node_id)


@router.put("/{node_id}", response_model=NodeOut)
async def update_node(node_id: str, payload: NodeUpdate, repo: RepoDep) -> NodeOut:
    """Apply the fields present in the body; absent fields keep their value."""
    return await repo.update(node_id, payload)


@router.delete("/{node_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_node(node_id: str, repo: RepoDep) -> Response:
    await repo.delete(node_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
