import time
import uuid
import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ckbuilder.core.observability.metrics import inc_http

log = logging.getLogger("ckbuilder.request")

REQUEST_ID_HEADER = "X-Request-Id"
REQUEST_ID_STATE_KEY = "request_id"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tags every request with an id (reused from the client when sent) and counts it."""

    async def dispatch(self, request: Request, call_next):
        rid = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        setattr(request.state, REQUEST_ID_STATE_KEY, rid)

        start = time.time()
        response: Response = await call_next(request)
        dur_ms = int((time.time() - start) * 1000)

        response.headers[REQUEST_ID_HEADER] = rid
        inc_http(request.method, request.url.path, response.status_code)
        log.info("%s %s -> %s (%dms) rid=%s",
                 request.method, request.url.path, response.status_code, dur_ms, rid)
        return response
