from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict, Union

from ckbuilder.core.config.loader import extract_object_literal, load_structured_file
from ckbuilder.core.errors import ConfigurationError, LanguageFileError
from ckbuilder.core.io.files import read_file

PathLike = Union[str, Path]

LANGUAGE_CODE = re.compile(r"^[a-z]{2}(?:-[a-z]+)?$")
DATA_SUFFIXES = (".json", ".yaml", ".yml")
SCRIPT_SUFFIX = ".js"

# CKEDITOR.lang['de'] = {...}  /  CKEDITOR.plugins.setLang( 'x', 'de', {...} )
_SCRIPT_MARKER = re.compile(r"CKEDITOR\.(?:lang\s*\[[^\]]+\]\s*=|plugins\.setLang\s*\([^{]*)")


def language_files(folder: PathLike) -> Dict[str, Path]:
    """Language code -> translation file in `folder`; data files win over scripts."""
    folder = Path(folder)
    found: Dict[str, Path] = {}
    if not folder.is_dir():
        return found
    for suffix in DATA_SUFFIXES + (SCRIPT_SUFFIX,):
        for path in sorted(folder.glob("*" + suffix)):
            code = path.name[: -len(suffix)]
            if LANGUAGE_CODE.match(code) and code not in found:
                found[code] = path
    return found


def load_language_file(path: PathLike) -> Dict[str, Any]:
    """Load one translation as a mapping (JSON, YAML or a legacy script)."""
    path = Path(path)
    try:
        if path.suffix == SCRIPT_SUFFIX:
            data = extract_object_literal(read_file(path), _SCRIPT_MARKER, path)
        else:
            data = load_structured_file(path)
    except ConfigurationError as e:
        raise LanguageFileError(f"Language file is invalid: {e.message}", path=path) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise LanguageFileError(
            f"Language file must hold a mapping, got {type(data).__name__}", path=path
        )
    return data
