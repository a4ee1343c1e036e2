from __future__ import annotations

import logging
import re
import time
from pathlib import Path
from typing import Optional, Union

from ckbuilder.core.css.inliner import merge_css_files
from ckbuilder.core.errors import DataError
from ckbuilder.core.extensions.common import copy_extension, find_definition_file, validation_errors
from ckbuilder.core.io.files import delete_path, prepare_target_folder, read_file
from ckbuilder.core.io.workdir import working_directory
from ckbuilder.core.options import BuildOptions
from ckbuilder.core.resolver.declarations import find_skin_name
from ckbuilder.core.sprite.composer import SpriteComposer
from ckbuilder.core.sprite.icons import find_icons

log = logging.getLogger("ckbuilder.skin")

PathLike = Union[str, Path]

_EXCLUDED = re.compile(r"([/\\])_source\1")

OK = "OK"


def _skin_errors(root: Path, name: Optional[str]) -> str:
    errors = validation_errors(root)
    lookup = None
    if not errors:
        lookup = find_definition_file(root, "skin.js", _EXCLUDED)
        if lookup.found is None:
            if len(lookup.candidates) > 1:
                errors += "Found more than one skin.js:\n" + "\n".join(lookup.candidates) + "\n"
            else:
                errors += "Unable to locate skin.js\n"
        elif name:
            defined = find_skin_name(read_file(lookup.found))
            if defined and defined != name:
                errors += (
                    f"The skin name defined inside skin.js ({defined}) "
                    f"does not match the expected skin name ({name})\n"
                )

    if lookup is not None and lookup.found is not None:
        icons = lookup.found.parent / "icons"
        # icons are optional
        if icons.exists() and not icons.is_dir():
            errors += 'There is an "icons" file, but a folder with this name is expected.\n'
    return errors


def verify_skin(skin: PathLike, name: Optional[str] = None) -> str:
    """Return "OK" or a newline separated list of problems."""
    with working_directory(skin) as root:
        errors = _skin_errors(root, name)
    return errors or OK


def preprocess_skin(
    skin: PathLike,
    target: PathLike,
    generate_sprite: bool = False,
    options: Optional[BuildOptions] = None,
) -> Path:
    """Copy the skin into `target` minified, optionally packing its icons into strips."""
    options = options or BuildOptions()
    target = Path(target).resolve()
    with working_directory(skin) as root:
        if _skin_errors(root, None):
            raise DataError("The skin is invalid", path=skin)
        lookup = find_definition_file(root, "skin.js", _EXCLUDED)
        if lookup.found is None:
            raise DataError("The skin file (skin.js) was not found", path=root)
        if not find_skin_name(read_file(lookup.found)):
            raise DataError("Unable to find skin name", path=lookup.found)

        copy_extension(lookup.found.parent, target, options)

    if generate_sprite:
        composer = SpriteComposer.from_options(options)
        css = target / "editor.css"
        for hidpi, image in ((False, "icons.png"), (True, "icons_hidpi.png")):
            icons = find_icons(target, hidpi)
            if icons:
                composer.compose(sorted(icons.values()), target / image, css, hidpi)

    if not options.leave_css_unminified:
        merge_css_files(target)
    return target


def build_skin(skin: PathLike, target: PathLike, options: Optional[BuildOptions] = None) -> Path:
    """Fresh target folder, preprocess with strips, drop the loose icons."""
    options = options or BuildOptions()
    started = time.monotonic()
    target = prepare_target_folder(target, options.overwrite)

    log.info("Building skin: %s", skin)
    preprocess_skin(skin, target, generate_sprite=True, options=options)
    delete_path(target / "icons")

    log.info("Processing time: %.2fs", time.monotonic() - started)
    return target
