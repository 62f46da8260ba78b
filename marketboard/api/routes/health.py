from __future__ import annotations

from fastapi import APIRouter

from ... import __version__
from ...db.cache import ping

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz() -> dict[str, object]:
    redis_ok = await ping()
    # Rankings are served from Redis; without it the API answers but has no data
    return {"status": "ok" if redis_ok else "degraded", "version": __version__, "redis": redis_ok}
