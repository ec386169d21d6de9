from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from ..app.settings import ApiSettings, get_api_settings
from ..db.engine import DBEngine
from ..nodes.repository import NodeRepository


def get_engine(request: Request) -> DBEngine:
    engine = getattr(request.app.state, "db_engine", None)
    if engine is None:
        raise RuntimeError("Database not initialized; build the app with create_app().")
    return engine


def get_api_config(request: Request) -> ApiSettings:
    return getattr(request.app.state, "api_settings", None) or get_api_settings()


def get_repository(engine: Annotated[DBEngine, Depends(get_engine)]) -> NodeRepository:
    return NodeRepository(engine)


EngineDep = Annotated[DBEngine, Depends(get_engine)]
RepoDep = Annotated[NodeRepository, Depends(get_repository)]
ApiConfigDep = Annotated[ApiSettings, Depends(get_api_config)]
