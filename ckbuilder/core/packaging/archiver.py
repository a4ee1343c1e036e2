from __future__ import annotations

import logging
import os
import tarfile
import zipfile
from pathlib import Path
from typing import Union

log = logging.getLogger("ckbuilder.packaging")

PathLike = Union[str, Path]


def _walk(source: Path):
    for root, dirs, files in os.walk(source):
        dirs.sort()
        for name in sorted(files):
            full = Path(root) / name
            yield full, full.relative_to(source).as_posix()


def make_zip(source: PathLike, output_path: PathLike, root_dir: str = "") -> Path:
    source = Path(source)
    output_path = Path(output_path)
    log.debug("zip: %s", source)
    with zipfile.ZipFile(output_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for full, rel in _walk(source):
            arcname = f"{root_dir}/{rel}" if root_dir else rel
            zf.write(full, arcname)
    return output_path


def make_tar_gz(source: PathLike, output_path: PathLike, root_dir: str = "") -> Path:
    source = Path(source)
    output_path = Path(output_path)
    log.debug("tar: %s", source)

    def _tarinfo_filter(ti: tarfile.TarInfo) -> tarfile.TarInfo:
        ti.uid = 0
        ti.gid = 0
        ti.uname = ""
        ti.gname = ""
        return ti

    with tarfile.open(output_path, "w:gz", format=tarfile.PAX_FORMAT) as tar:
        for full, rel in _walk(source):
            arcname = f"{root_dir}/{rel}" if root_dir else rel
            tar.add(full, arcname=arcname, filter=_tarinfo_filter)
    return output_path
