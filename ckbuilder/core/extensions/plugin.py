"""Verification and standalone preprocessing of a single plugin (folder or .zip)."""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional, Union

from ckbuilder.core.errors import DataError
from ckbuilder.core.extensions.common import copy_extension, find_definition_file, validation_errors
from ckbuilder.core.io.files import prepare_target_folder, read_file, save_file
from ckbuilder.core.io.workdir import working_directory
from ckbuilder.core.lang.files import language_files, load_language_file
from ckbuilder.core.lang.merger import to_pseudo_object
from ckbuilder.core.options import BuildOptions
from ckbuilder.core.resolver.declarations import find_plugin_name
from ckbuilder.core.utils.merge import deep_merge

log = logging.getLogger("ckbuilder.plugin")

PathLike = Union[str, Path]

_EXCLUDED = re.compile(r"([/\\])(?:_source|dev)\1", re.I)

OK = "OK"


def _plugin_errors(root: Path, name: Optional[str]) -> str:
    errors = validation_errors(root)
    if errors:
        return errors

    lookup = find_definition_file(root, "plugin.js", _EXCLUDED)
    if lookup.found is None:
        if len(lookup.candidates) > 1:
            if not lookup.preferred:
                return "Could not find plugin.js:\n" + "\n".join(lookup.candidates) + "\n"
            return "Found more than one plugin.js:\n" + "\n".join(lookup.candidates) + "\n"
        return "Unable to locate plugin.js\n"

    if name:
        defined = find_plugin_name(read_file(lookup.found))
        if defined and defined != name:
            return (
                f"The plugin name defined inside plugin.js ({defined}) "
                f"does not match the expected plugin name ({name})\n"
            )
    return ""


def verify_plugin(plugin: PathLike, name: Optional[str] = None) -> str:
    """Return "OK" or a newline separated list of problems."""
    with working_directory(plugin) as root:
        errors = _plugin_errors(root, name)
    return errors or OK


def preprocess_plugin(plugin: PathLike, target: PathLike, options: Optional[BuildOptions] = None) -> Path:
    """
    Write an optimized copy of the plugin into `target` (replaced only with `overwrite`).

    Scripts are minified and translations are rewritten as pseudo objects
    (JSON members without braces) merged over the fallback language.
    """
    options = options or BuildOptions()
    with working_directory(plugin) as root:
        if _plugin_errors(root, None):
            raise DataError("The plugin is invalid", path=plugin)
        lookup = find_definition_file(root, "plugin.js", _EXCLUDED)
        if lookup.found is None:
            raise DataError("The plugin file (plugin.js) was not found", path=root)

        plugin_root = lookup.found.parent
        target = prepare_target_folder(target, options.overwrite)

        lang_dir = plugin_root / "lang"
        manifest = plugin_root / "manifest.js"

        def skip(src: Path) -> bool:
            if src == manifest:
                return True
            return not options.leave_js_unminified and src == lang_dir

        copy_extension(plugin_root, target, options, skip=skip, strip_license=target / "plugin.js")

        if not options.leave_js_unminified and lang_dir.is_dir():
            log.info("Processing lang folder")
            write_plugin_translations(lang_dir, target / "lang", options.fallback_language)
    return target


def write_plugin_translations(lang_dir: Path, target_dir: Path, fallback: str = "en") -> int:
    files = language_files(lang_dir)
    if fallback not in files:
        raise DataError(f"Fallback language file is missing: {fallback}", path=lang_dir)

    target_dir.mkdir(parents=True, exist_ok=True)
    base = load_language_file(files[fallback])
    for code, path in files.items():
        translation = base if code == fallback else deep_merge(base, load_language_file(path))
        save_file(target_dir / f"{code}.js", to_pseudo_object(translation), include_bom=True)
    return len(files)
