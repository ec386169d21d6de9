from .health import router as health_router
from .nodes import router as nodes_router

__all__ = ["health_router", "nodes_router"]
