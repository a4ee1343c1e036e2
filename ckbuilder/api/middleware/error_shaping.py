from __future__ import annotations

import logging
import traceback
from typing import Callable, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from ckbuilder.core.errors import BuildError

log = logging.getLogger("ckbuilder.errors")


def _request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None) or request.headers.get("x-request-id")


def build_error_response(exc: BuildError, rid: Optional[str] = None) -> JSONResponse:
    payload = exc.to_dict()
    if rid:
        payload["request_id"] = rid
    return JSONResponse(status_code=422, content=payload)


class SafeErrorMiddleware(BaseHTTPMiddleware):
    """
    Outermost wrapper of the API.

    A failed build is the caller's problem (bad tree, bad config) and comes
    back as 422 with the error message and offending path. Anything else is
    logged with its traceback and answered with a bare 500.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except BuildError as e:
            rid = _request_id(request)
            log.warning("Build failed: %s rid=%s path=%s", e, rid, request.url.path)
            return build_error_response(e, rid)
        except Exception as e:
            rid = _request_id(request)
            log.error(
                "Unhandled error: %s rid=%s path=%s\n%s",
                str(e),
                rid,
                request.url.path,
                traceback.format_exc(),
            )
            payload = {"detail": "Internal Server Error"}
            if rid:
                payload["request_id"] = rid
            return JSONResponse(status_code=500, content=payload)
