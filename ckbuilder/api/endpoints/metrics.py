from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ckbuilder.core.observability.metrics import snapshot_named, snapshot_requests

router = APIRouter()


def _render():
    req = snapshot_requests()
    body = {"requests": req, "counters": snapshot_named()}
    if "requests_total" in req:
        body["requests_total"] = req["requests_total"]
    return body


@router.get("/api/v1/metrics/snapshot")
def metrics_snapshot():
    return _render()


@router.get("/metrics")
def metrics_prometheus():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
