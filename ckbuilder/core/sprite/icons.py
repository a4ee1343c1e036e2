from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional, Sequence, Union

from ckbuilder.core.io.files import get_extension
from ckbuilder.core.utils.merge import deep_merge

log = logging.getLogger("ckbuilder.sprite")

IconTable = Dict[str, str]
PathLike = Union[str, Path]

IMAGE_EXTENSIONS = frozenset({"png", "jpg", "gif"})


def _collect_images(directory: Path, into: IconTable) -> IconTable:
    for child in sorted(directory.iterdir(), key=lambda p: p.name):
        if child.is_file() and get_extension(child.name) in IMAGE_EXTENSIONS:
            into[child.name.split(".", 1)[0]] = str(child.resolve())
    return into


def find_icons(location: Optional[PathLike], hidpi: bool = False) -> IconTable:
    """
    Map icon name -> image path for every `icons` folder below `location`.

    In HiDPI mode, images from `icons/hidpi` replace their standard-density
    namesakes. Results from later subdirectories overwrite earlier ones.
    """
    if not location:
        return {}
    root = Path(location)
    if not root.is_dir():
        return {}

    result: IconTable = {}
    for child in sorted(root.iterdir(), key=lambda p: p.name):
        if not child.is_dir():
            continue
        if child.name == "icons":
            _collect_images(child, result)
            hidpi_dir = child / "hidpi"
            if hidpi and hidpi_dir.is_dir():
                _collect_images(hidpi_dir, result)
        else:
            result = deep_merge(result, find_icons(child, hidpi))
    return result


class IconSelectionPolicy:
    """Decides which module icons take part in a strip."""

    name = "base"

    def select(self, plugins_dir: Path, plugin_names: Sequence[str], hidpi: bool) -> IconTable:
        raise NotImplementedError


class IncludeAllIconPolicy(IconSelectionPolicy):
    """Every icon found below the plugins folder; the last one discovered wins."""

    name = "include_all"

    def select(self, plugins_dir: Path, plugin_names: Sequence[str], hidpi: bool) -> IconTable:
        return find_icons(plugins_dir, hidpi)


class ResolvedModulesIconPolicy(IconSelectionPolicy):
    """Icons of the resolved modules only; the first module providing a name wins."""

    name = "resolved_modules"

    def select(self, plugins_dir: Path, plugin_names: Sequence[str], hidpi: bool) -> IconTable:
        icons: IconTable = {}
        for name in plugin_names:
            folder = Path(plugins_dir) / name
            if folder.is_dir():
                icons = deep_merge(find_icons(folder, hidpi), icons)
        return icons


def policy_for(include_all: bool) -> IconSelectionPolicy:
    return IncludeAllIconPolicy() if include_all else ResolvedModulesIconPolicy()


def apply_theme_overrides(selected: IconTable, theme_icons: IconTable) -> IconTable:
    """Theme images replace selected names; the theme never adds new names."""
    return deep_merge(selected, theme_icons, full_merge=False)
