from __future__ import annotations

from fastapi import FastAPI, Request

from ckbuilder import __version__
from ckbuilder.api.endpoints import builds, health, metrics, verify
from ckbuilder.api.middleware.error_shaping import SafeErrorMiddleware, build_error_response
from ckbuilder.api.middleware.request_id import RequestIdMiddleware
from ckbuilder.core.errors import BuildError

app = FastAPI(
    title="ckbuilder API",
    version=__version__,
)

# ------------------------------------------------------------
# Middleware stack: the LAST call is the OUTERMOST wrapper.
#   SafeErrorMiddleware -> RequestIdMiddleware -> handler
# ------------------------------------------------------------
app.add_middleware(RequestIdMiddleware)
app.add_middleware(SafeErrorMiddleware)


@app.exception_handler(BuildError)
async def handle_build_error(request: Request, exc: BuildError):
    return build_error_response(exc, getattr(request.state, "request_id", None))


app.include_router(health.router)
app.include_router(builds.router)
app.include_router(verify.router)
app.include_router(metrics.router)
