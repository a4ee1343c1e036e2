from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from ckbuilder.core.config.models import BuildConfig


class BuildRequest(BaseModel):
    source_dir: str
    target_dir: str

    # "build": full release, "core": ckeditor.js only, "preprocess": online builder input
    mode: Literal["build", "core", "preprocess"] = "build"

    # inline configuration; falls back to build_config / build-config.yaml when omitted
    config: Optional[BuildConfig] = None
    build_config: Optional[str] = None

    version: Optional[str] = None
    revision: Optional[str] = None
    overwrite: bool = False
    include_all: bool = True
    commercial: bool = False
    leave_js_unminified: bool = False
    leave_css_unminified: bool = False
    no_zip: bool = False
    no_tar: bool = False


class BuildResponse(BaseModel):
    message: str
    mode: str
    target: str
    core_scripts: List[str] = Field(default_factory=list)
    plugins: List[str] = Field(default_factory=list)
    files: int = 0
    size: int = 0
    archives: List[str] = Field(default_factory=list)


class VerifyRequest(BaseModel):
    path: str
    name: Optional[str] = None


class VerifyResponse(BaseModel):
    ok: bool
    result: str
    errors: List[str] = Field(default_factory=list)
