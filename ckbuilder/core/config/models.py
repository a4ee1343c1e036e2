from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

Placement = Literal["start", "aftercore", "end"]


class ExtraScript(BaseModel):
    path: str
    placement: Placement = "end"


class BuildConfig(BaseModel):
    # plugin name -> included in the bundle
    plugins: Dict[str, bool] = Field(default_factory=dict)

    # None: not configured; "": build without a skin
    skin: Optional[str] = None
    skins: Dict[str, bool] = Field(default_factory=dict)

    language: Optional[str] = None

    # None: every language; otherwise only the enabled ones
    languages: Optional[Dict[str, bool]] = None

    js: List[str] = Field(default_factory=list)
    ignore: List[str] = Field(default_factory=list)

    def enabled_plugins(self) -> List[str]:
        return [name for name, enabled in self.plugins.items() if enabled]

    def enabled_languages(self) -> List[str]:
        if not self.languages:
            return []
        return [code for code, enabled in self.languages.items() if enabled]

    def extra_scripts(self) -> List[ExtraScript]:
        out: List[ExtraScript] = []
        for entry in self.js:
            path, sep, placement = entry.rpartition(",")
            if sep and placement in ("start", "aftercore", "end"):
                out.append(ExtraScript(path=path, placement=placement))
            else:
                out.append(ExtraScript(path=entry))
        return out
