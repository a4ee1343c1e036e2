from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def make_timestamp(now: Optional[datetime] = None) -> str:
    """Short cache-busting token: base36 of UTC year%1000, month (0-based), day, hour."""
    now = now or datetime.now(timezone.utc)
    parts = (now.year % 1000, now.month - 1, now.day, now.hour)
    return "".join(_to_base36(p) for p in parts).upper()


def _env_flag(name: str) -> bool:
    return (os.getenv(name) or "").strip().lower() in ("1", "true", "yes")


class BuildOptions(BaseModel):
    version: str = "DEV"
    revision: str = "0"
    timestamp: str = Field(default_factory=make_timestamp)

    # 0 = info, 1 = debug, 2+ = verbose debug
    debug: int = 0

    # False means "skip omitted in build config"
    include_all: bool = True
    overwrite: bool = False
    build_config: Optional[str] = None
    core_only: bool = False
    commercial: bool = False

    leave_js_unminified: bool = False
    leave_css_unminified: bool = False
    no_zip: bool = False
    no_tar: bool = False

    fallback_language: str = "en"

    @classmethod
    def from_env(cls, **overrides) -> "BuildOptions":
        data = {}
        lang = (os.getenv("CKBUILDER_DEFAULT_LANGUAGE") or "").strip()
        if lang:
            data["fallback_language"] = lang
        version = (os.getenv("CKBUILDER_VERSION") or "").strip()
        if version:
            data["version"] = version
        revision = (os.getenv("CKBUILDER_REVISION") or "").strip()
        if revision:
            data["revision"] = revision
        if _env_flag("CKBUILDER_LEAVE_JS_UNMINIFIED"):
            data["leave_js_unminified"] = True
        if _env_flag("CKBUILDER_LEAVE_CSS_UNMINIFIED"):
            data["leave_css_unminified"] = True
        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**data)

    def archive_suffix(self) -> str:
        return str(self.version).lower().replace(" ", "_").replace("()", "")
