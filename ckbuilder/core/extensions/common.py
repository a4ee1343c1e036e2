from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional

from ckbuilder.core.directives.banners import remove_license_instruction
from ckbuilder.core.directives.preprocessor import DirectiveFlags, DirectivePreprocessor
from ckbuilder.core.io.files import (
    DESCEND,
    HANDLED,
    SKIP,
    copy_tree,
    fix_line_endings,
    get_extension,
    iter_files,
    read_file,
    save_file,
)
from ckbuilder.core.javascript.minifier import minify_file, validate_javascript_files
from ckbuilder.core.options import BuildOptions

log = logging.getLogger("ckbuilder.extensions")


@dataclass
class DefinitionLookup:
    """Result of searching an extension folder for its definition file."""

    found: Optional[Path]
    candidates: List[str]
    preferred: List[str]


def find_definition_file(root: Path, filename: str, excluded: "re.Pattern[str]") -> DefinitionLookup:
    """
    Locate the single definition file (plugin.js / skin.js) below `root`.

    Copies inside excluded folders (e.g. `_source`) are ignored when more
    than one candidate exists.
    """
    matches = [p for p in iter_files(root) if p.name == filename]
    rel = ["/" + p.relative_to(root).as_posix() for p in matches]
    if len(matches) == 1:
        return DefinitionLookup(matches[0], rel, rel)

    preferred = [r for r, p in zip(rel, matches) if not excluded.search(r)]
    found = None
    if len(preferred) == 1:
        found = matches[rel.index(preferred[0])]
    return DefinitionLookup(found, rel, preferred)


def validation_errors(root: Path) -> str:
    log.debug("Validating JS files in %s", root)
    errors = validate_javascript_files(root)
    return "".join(e + "\n" for e in errors)


def copy_extension(
    root: Path,
    target: Path,
    options: BuildOptions,
    skip: Optional[Callable[[Path], bool]] = None,
    strip_license: Optional[Path] = None,
) -> None:
    """
    Copy an extension folder, applying directives and minifying scripts.

    With `leave_js_unminified` files are only normalised.
    """
    preprocessor = DirectivePreprocessor.from_options(options)
    flags: Dict[Path, DirectiveFlags] = {}

    def before(src: Path, dst: Path) -> int:
        if skip is not None and skip(src):
            return SKIP
        if src.is_file() and fix_line_endings(src, dst):
            if options.leave_js_unminified:
                return HANDLED
            flag = preprocessor.process_file(dst, is_core=True)
            if flag.leave_unminified:
                flags[dst.resolve()] = flag
            return HANDLED
        return DESCEND

    def after(dst: Path) -> None:
        if options.leave_js_unminified or get_extension(dst) != "js":
            return
        resolved = dst.resolve()
        if resolved in flags:
            log.debug("Leaving unminified: %s", dst)
            save_file(dst, remove_license_instruction(read_file(dst)), include_bom=True)
            return
        # scripts that end up inside ckeditor.js lose their @license marker
        if strip_license is not None and resolved == strip_license.resolve():
            save_file(dst, remove_license_instruction(read_file(dst)), include_bom=True)
        minify_file(dst)

    copy_tree(root, target, before, after)
