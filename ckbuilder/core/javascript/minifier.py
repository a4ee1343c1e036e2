from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Union

import esprima
from esprima.error_handler import Error as ScriptSyntaxError
from jsmin import jsmin

from ckbuilder.core.directives.banners import get_copyright_from_text
from ckbuilder.core.errors import BuildError
from ckbuilder.core.io.files import get_extension, iter_files, read_file, save_file

log = logging.getLogger("ckbuilder.javascript")

PathLike = Union[str, Path]


def minify_js(text: str, keep_banner: bool = True) -> str:
    """Minify a script, keeping its leading copyright/license comment."""
    banner = get_copyright_from_text(text) if keep_banner else ""
    return banner + jsmin(text, quote_chars="'\"`").strip()


def minify_file(path: PathLike, keep_banner: bool = True) -> None:
    if get_extension(path) != "js":
        raise BuildError("Not a JavaScript file", path=path)
    log.debug("Minifying: %s", path)
    try:
        minified = minify_js(read_file(path), keep_banner)
    except BuildError:
        raise
    except Exception as e:
        raise BuildError(f"Unable to compile file: {e}", path=path) from e
    save_file(path, minified, include_bom=True)


def validate_javascript_file(path: PathLike) -> List[str]:
    """Parse the script; each problem is reported as `path:line: message`."""
    try:
        text = read_file(path)
    except BuildError as e:
        return [f"{path}: {e.message}"]
    try:
        esprima.parseScript(text)
    except ScriptSyntaxError as e:
        line = getattr(e, "lineNumber", None) or "?"
        message = getattr(e, "description", None) or str(e)
        return [f"{path}:{line}: {message}"]
    return []


def validate_javascript_files(directory: PathLike) -> List[str]:
    errors: List[str] = []
    for path in iter_files(directory, ".js"):
        errors.extend(validate_javascript_file(path))
    return errors
