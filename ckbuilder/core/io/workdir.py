from __future__ import annotations

import io
import logging
import shutil
import tempfile
import zipfile
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator, Union

from ckbuilder.core.errors import BuildError
from ckbuilder.core.io.files import get_extension

log = logging.getLogger("ckbuilder.io")


def _extract(archive: Union[Path, BinaryIO], dest: Path, label: str) -> None:
    try:
        with zipfile.ZipFile(archive) as zf:
            members = zf.namelist()
            for member in members:
                resolved = (dest / member).resolve()
                if dest.resolve() not in resolved.parents and resolved != dest.resolve():
                    raise BuildError("Archive entry escapes the working directory", path=member)
            zf.extractall(dest)
    except zipfile.BadZipFile as e:
        raise BuildError("Unable to extract archive file", path=label) from e

    # nested archives of this archive only, each removed before it is unpacked
    for member in sorted(m for m in members if get_extension(m) == "zip"):
        inner = dest / member
        if not inner.is_file():
            continue
        payload = io.BytesIO(inner.read_bytes())
        inner.unlink()
        _extract(payload, dest, member)


@contextmanager
def working_directory(element: Union[str, Path]) -> Iterator[Path]:
    """
    Yield a directory holding the extension sources.

    Directories are used in place; a .zip file is unpacked into a temporary
    directory that is removed on exit.
    """
    location = Path(element).resolve()
    if location.is_dir():
        yield location
        return

    if not location.exists():
        raise BuildError("Path does not exist", path=location)
    if get_extension(location) != "zip":
        raise BuildError("The element file is not a zip file", path=location)

    tmp = Path(tempfile.mkdtemp(prefix="ckbuilder-"))
    log.debug("Unpacking %s into %s", location, tmp)
    try:
        _extract(location, tmp, str(location))
        yield tmp
    finally:
        shutil.rmtree(tmp, ignore_errors=True)
