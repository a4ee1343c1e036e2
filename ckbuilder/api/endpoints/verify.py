from __future__ import annotations

from fastapi import APIRouter

from ckbuilder.api.endpoints.builds import check_allowed_path
from ckbuilder.api.models.builds import VerifyRequest, VerifyResponse
from ckbuilder.core.extensions.plugin import verify_plugin
from ckbuilder.core.extensions.skin import verify_skin
from ckbuilder.core.observability.metrics import inc_named

router = APIRouter(prefix="/api/v1", tags=["Verify"])


def _response(result: str) -> VerifyResponse:
    if result == "OK":
        return VerifyResponse(ok=True, result=result)
    return VerifyResponse(ok=False, result=result, errors=[line for line in result.splitlines() if line])


@router.post("/plugins/verify", response_model=VerifyResponse)
def plugins_verify(req: VerifyRequest):
    inc_named("verify_plugin")
    return _response(verify_plugin(check_allowed_path(req.path), req.name))


@router.post("/skins/verify", response_model=VerifyResponse)
def skins_verify(req: VerifyRequest):
    inc_named("verify_skin")
    return _response(verify_skin(check_allowed_path(req.path), req.name))
