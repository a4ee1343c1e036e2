from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set, Union

from cssmin import cssmin

from ckbuilder.core.css.comments import remove_comments
from ckbuilder.core.directives.banners import get_copyright_from_text
from ckbuilder.core.errors import (
    ConfigurationError,
    DuplicateImportError,
    ImportTargetNotFoundError,
    MalformedImportError,
    SelfImportError,
)
from ckbuilder.core.io.files import delete_path, iter_files, read_file, save_file

log = logging.getLogger("ckbuilder.css")

PathLike = Union[str, Path]

_LINE_SPLIT = re.compile(r"\r\n|\n|\r")
_IMPORT = re.compile(r"""^\s*@import\s+url\(["'](.*?)["']\)""")
_BLANK_RUNS = re.compile(r"(?:\r\n){2,}")

# Always kept by the orphan purge: loaded directly by the editor at runtime.
PROTECTED_STYLESHEETS = frozenset({"dialog.css", "editor.css"})


def _abspath(path: PathLike) -> str:
    return os.path.normpath(os.path.abspath(str(path)))


@dataclass
class ImportSession:
    """Import record of one merge run: root stylesheet -> files it pulled in."""

    imported: Dict[str, Set[str]] = field(default_factory=dict)

    def record(self, root: str, child: str) -> None:
        self.imported.setdefault(root, set()).add(child)

    def already_imported(self, root: str, child: str) -> bool:
        return child in self.imported.get(root, ())

    def is_root(self, path: str) -> bool:
        return path in self.imported

    def orphans(self) -> List[str]:
        out: Set[str] = set()
        for children in self.imported.values():
            out.update(c for c in children if not self.is_root(c))
        return sorted(out)


class CssImportInliner:
    """Flattens `@import url(...)` statements into their importing stylesheet."""

    def __init__(self, session: Optional[ImportSession] = None):
        self.session = session or ImportSession()

    def inline(self, root_path: PathLike) -> str:
        root = _abspath(root_path)
        return self._process(root, root)

    def _process(self, source: str, root: str) -> str:
        is_imported = source != root
        lines = _LINE_SPLIT.split(read_file(source))
        out: List[str] = []

        for line in lines:
            if "@import" not in line:
                out.append(line)
                continue

            m = _IMPORT.match(line)
            if m is None:
                raise MalformedImportError(f"Malformed @import statement: {line.strip()}", path=source)
            if not m.group(1):
                out.append(line)
                continue

            target = _abspath(os.path.join(os.path.dirname(source), m.group(1)))
            if not os.path.exists(target):
                raise ImportTargetNotFoundError(
                    "Importing of CSS file failed, file does not exist", path=target
                )
            if target == root:
                raise SelfImportError("Invalid @import statement, file including itself", path=target)
            if self.session.already_imported(root, target):
                raise DuplicateImportError(
                    f"Invalid @import statement in {root}, file was already imported", path=target
                )
            self.session.record(root, target)
            out.append(self._process(target, root))

        if is_imported:
            return remove_comments("\r\n".join(out))
        return _BLANK_RUNS.sub("\r\n", "\r\n".join(out))

    def purge_orphans(self) -> List[str]:
        """Delete imported stylesheets that are not themselves roots of an import tree."""
        removed: List[str] = []
        for path in self.session.orphans():
            if os.path.basename(path) in PROTECTED_STYLESHEETS:
                continue
            log.debug("CSS file was imported, removing: %s", path)
            delete_path(path)
            removed.append(path)
        return removed


def compress_css(text: str) -> str:
    return get_copyright_from_text(text) + cssmin(text)


def merge_css_files(directory: PathLike, leave_unminified: bool = False) -> ImportSession:
    """
    Inline imports of every stylesheet below `directory`, drop the imported
    leftovers, then minify what remains unless asked not to.
    """
    target = Path(directory)
    if not target.is_dir():
        raise ConfigurationError("CSS compression failed. The target location is not a directory", path=target)

    inliner = CssImportInliner()
    for path in list(iter_files(target, ".css")):
        if not path.exists():
            continue
        save_file(path, inliner.inline(path))
        log.debug("Saved CSS file: %s", path)

    inliner.purge_orphans()

    if not leave_unminified:
        for path in iter_files(target, ".css"):
            log.debug("Compressing %s", path)
            save_file(path, compress_css(read_file(path)))

    return inliner.session
