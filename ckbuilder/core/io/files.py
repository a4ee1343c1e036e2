from __future__ import annotations

import logging
import os
import re
import shutil
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

from ckbuilder.core.errors import BuildError

log = logging.getLogger("ckbuilder.io")

BOM = "\ufeff"

VCS_DIRS = frozenset({".svn", "CVS", ".git"})

# Extensions treated as text: trailing whitespace is stripped on copy.
TEXT_EXTENSIONS = frozenset(
    {
        "cgi", "pl", "sh", "readme", "afp", "afpa", "ascx", "asp", "aspx", "bat",
        "cfc", "cfm", "code", "command", "conf", "css", "dtd", "htaccess", "htc",
        "htm", "html", "js", "jsp", "lasso", "md", "php", "py", "sample", "txt",
        "xml", "json", "yaml", "yml",
    }
)
BOM_EXTENSIONS = frozenset({"asp", "js"})

_TRAILING_WS = re.compile(r"[\t ]+$")
_TRAILING_EOF = re.compile(r"[\t \r\n]+\Z")

PathLike = Union[str, Path]

# before-callback verdicts for copy_tree
SKIP = -1
DESCEND = 0
HANDLED = 1


def get_extension(name: PathLike) -> str:
    name = os.path.basename(str(name))
    pos = name.rfind(".")
    if pos == -1:
        return ""
    return name[pos + 1:].lower()


def read_file(path: PathLike) -> str:
    try:
        data = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise BuildError("An I/O error occurred while reading the file", path=path) from e
    if data.startswith(BOM):
        data = data[1:]
    return data


def read_files(paths: Iterable[PathLike], separator: str = "") -> str:
    return separator.join(read_file(p) for p in paths)


def save_file(path: PathLike, text: str, include_bom: bool = False) -> None:
    if include_bom:
        text = BOM + text
    try:
        # newline="" keeps CRLF sequences untouched
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(text)
    except OSError as e:
        raise BuildError("Cannot save file", path=path) from e


def delete_path(path: PathLike) -> None:
    p = Path(path)
    try:
        if p.is_dir():
            shutil.rmtree(p)
        elif p.exists():
            p.unlink()
    except OSError as e:
        raise BuildError("Cannot delete", path=path) from e


def prepare_target_folder(target: PathLike, overwrite: bool) -> Path:
    target = Path(target).resolve()
    if target.exists():
        if not overwrite:
            raise BuildError("Target folder already exists", path=target)
        log.info("Cleaning up target folder %s", target)
        delete_path(target)
    try:
        target.mkdir(parents=True)
    except OSError as e:
        raise BuildError("Unable to create target directory", path=target) from e
    return target


def fix_line_endings(source: PathLike, target: PathLike) -> bool:
    """
    Copy a text file, stripping trailing whitespace on every line.

    JS/ASP files get a byte order mark, other files lose it. The file ends with
    a single newline. Returns False (nothing written) for non-text files.
    """
    ext = get_extension(source)
    if ext not in TEXT_EXTENSIONS:
        return False

    log.debug("Fixing line endings in: %s", target)
    try:
        raw = Path(source).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise BuildError("An I/O error occurred while reading the file", path=source) from e

    has_bom = raw.startswith(BOM)
    if has_bom:
        raw = raw[1:]

    lines = re.split(r"\r\n|\n", raw)
    text = "".join(_TRAILING_WS.sub("", line) + "\n" for line in lines)
    text = _TRAILING_EOF.sub("\n", text)

    save_file(target, text, include_bom=ext in BOM_EXTENSIONS)
    return True


def copy_tree(
    source: PathLike,
    target: PathLike,
    before: Optional[Callable[[Path, Path], int]] = None,
    after: Optional[Callable[[Path], None]] = None,
) -> None:
    """
    Copy `source` to `target` recursively.

    `before(src, dst)` decides per entry: SKIP leaves it out, HANDLED means the
    callback already produced `dst`, DESCEND falls back to a plain copy (or
    recursion for directories). `after(dst)` runs for every written file.
    Directories that end up empty are removed.
    """
    source = Path(source)
    target = Path(target)

    if before is not None:
        verdict = before(source, target)
        if verdict == SKIP:
            return
        if verdict == HANDLED:
            if after is not None:
                after(target)
            return

    if source.is_dir():
        target.mkdir(parents=True, exist_ok=True)
        for child in sorted(os.listdir(source)):
            if child in VCS_DIRS:
                continue
            copy_tree(source / child, target / child, before, after)
        if not any(target.iterdir()):
            target.rmdir()
    else:
        try:
            shutil.copyfile(source, target)
        except OSError as e:
            raise BuildError(f"Cannot copy file to {target}", path=source) from e
        if after is not None:
            after(target)


def directory_info(path: PathLike) -> dict:
    files = 0
    size = 0
    for root, _dirs, names in os.walk(path):
        for name in names:
            files += 1
            size += os.path.getsize(os.path.join(root, name))
    return {"files": files, "size": size}


def iter_files(path: PathLike, suffix: Optional[str] = None):
    """Yield files below `path` in sorted walk order."""
    for root, dirs, names in os.walk(path):
        dirs.sort()
        for name in sorted(names):
            if suffix is None or name.lower().endswith(suffix):
                yield Path(root) / name
