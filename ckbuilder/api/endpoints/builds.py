from __future__ import annotations

import logging
import os
from pathlib import Path

from fastapi import APIRouter, HTTPException

from ckbuilder.api.models.builds import BuildRequest, BuildResponse
from ckbuilder.core.builder.orchestrator import Builder
from ckbuilder.core.options import BuildOptions

log = logging.getLogger("ckbuilder.api")

router = APIRouter(prefix="/api/v1", tags=["Builds"])


def check_allowed_path(raw: str) -> Path:
    """
    Paths are resolved on the server. When CKBUILDER_API_ROOT is set, every
    path must live below it.
    """
    path = Path(raw).resolve()
    root = (os.getenv("CKBUILDER_API_ROOT") or "").strip()
    if root:
        base = Path(root).resolve()
        if path != base and base not in path.parents:
            raise HTTPException(status_code=403, detail=f"Path outside of the allowed root: {raw}")
    return path


@router.post("/builds", response_model=BuildResponse)
def create_build(req: BuildRequest):
    source = check_allowed_path(req.source_dir)
    target = check_allowed_path(req.target_dir)

    options = BuildOptions.from_env(
        version=req.version,
        revision=req.revision,
        build_config=req.build_config,
        overwrite=req.overwrite,
        include_all=req.include_all,
        commercial=req.commercial,
        leave_js_unminified=req.leave_js_unminified,
        leave_css_unminified=req.leave_css_unminified,
        no_zip=req.no_zip,
        no_tar=req.no_tar,
    )
    builder = Builder(source, target, options, config=req.config)
    log.info("API %s: %s -> %s", req.mode, source, target)

    if req.mode == "core":
        report = builder.generate_core()
    elif req.mode == "preprocess":
        report = builder.preprocess()
    else:
        report = builder.generate_build()

    return BuildResponse(message="ok", mode=req.mode, **report.to_dict())
