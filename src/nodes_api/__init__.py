"""Labeled JSON documents with tags, stored in PostgreSQL and served over HTTP."""

from .exceptions import (
    ConfigurationError,
    NodesError,
    NotFound,
    StoreError,
    StoreUnavailable,
    ValidationError,
)
from .nodes import NodeIn, NodeOut, NodeRepository, NodeUpdate

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "NodesError",
    "NotFound",
    "StoreError",
    "StoreUnavailable",
    "ValidationError",
    "NodeIn",
    "NodeOut",
    "NodeRepository",
    "NodeUpdate",
]
