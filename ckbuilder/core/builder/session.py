from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set

from ckbuilder.core.config.models import BuildConfig
from ckbuilder.core.directives.preprocessor import DirectiveFlags


@dataclass
class BuildSession:
    """Everything computed during one assembly run. Discarded afterwards."""

    config: BuildConfig
    source: Path
    target: Path

    core_scripts: List[str] = field(default_factory=list)
    plugin_names: List[str] = field(default_factory=list)

    extra_code: Dict[str, List[str]] = field(
        default_factory=lambda: {"start": [], "aftercore": [], "end": []}
    )
    extra_files: Set[Path] = field(default_factory=set)

    # target file -> flags collected while copying
    flags: Dict[Path, DirectiveFlags] = field(default_factory=dict)

    @property
    def plugin_set(self) -> Set[str]:
        return set(self.plugin_names)

    def source_skin_file(self) -> Optional[Path]:
        if not self.config.skin:
            return None
        return self.source / "skins" / self.config.skin / "skin.js"

    def target_skin_file(self) -> Optional[Path]:
        if not self.config.skin:
            return None
        return self.target / "skins" / self.config.skin / "skin.js"

    def core_script_files(self) -> List[Path]:
        return [self.source / "core" / f"{name}.js" for name in self.core_scripts]

    def plugin_files(self) -> List[Path]:
        return [self.source / "plugins" / name / "plugin.js" for name in self.plugin_names]


@dataclass
class BuildReport:
    target: str
    core_scripts: List[str]
    plugins: List[str]
    files: int = 0
    size: int = 0
    archives: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "target": self.target,
            "core_scripts": list(self.core_scripts),
            "plugins": list(self.plugins),
            "files": self.files,
            "size": self.size,
            "archives": list(self.archives),
        }
