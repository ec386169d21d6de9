from __future__ import annotations

from fastapi import APIRouter, Response
from fastapi.responses import JSONResponse

from ...db.health import db_healthcheck
from ..deps import EngineDep

router = APIRouter(tags=["internal"])


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/_db/health", include_in_schema=False)
async def db_health(engine: EngineDep, verbose: int = 0):
    async with engine.session() as s:
        ok = await db_healthcheck(s)
    if not verbose:
        return Response(status_code=200 if ok else 503)
    info = {
        "ok": ok,
        "driver": engine.engine.url.get_backend_name(),
        "database": engine.safe_url(),
    }
    return JSONResponse(status_code=200 if ok else 503, content=info)
