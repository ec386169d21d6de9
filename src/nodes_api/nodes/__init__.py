from .models import Node
from .repository import DEFAULT_SEARCH_LIMIT, NodeRepository
from .schemas import NodeIn, NodeOut, NodeUpdate, SearchRequest, normalize_tags

__all__ = [
    "Node",
    "NodeRepository",
    "DEFAULT_SEARCH_LIMIT",
    "NodeIn",
    "NodeOut",
    "NodeUpdate",
    "SearchRequest",
    "normalize_tags",
]
