from __future__ import annotations

from fastapi import APIRouter

from ckbuilder import __version__
from ckbuilder.core.observability.metrics import inc_named

router = APIRouter()


@router.get("/health/live")
async def live():
    inc_named("health_live")
    return {"status": "alive", "version": __version__}


@router.get("/api/v1/health/live")
def liveness():
    inc_named("health_live")
    return {"status": "alive", "version": __version__}
