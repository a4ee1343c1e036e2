"""
Declarative table loading.

Build configuration, the core loader table and translation data may be
stored as JSON, YAML, or a JavaScript object literal (e.g. a legacy
`build-config.js` holding `var CKBUILDER_CONFIG = {...};`).

Object literals are parsed as YAML flow mappings once comments and trailing
commas are removed, which covers unquoted keys and single-quoted strings.
"""
from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import yaml

from ckbuilder.core.config.models import BuildConfig
from ckbuilder.core.errors import ConfigurationError
from ckbuilder.core.io.files import read_file, save_file

log = logging.getLogger("ckbuilder.config")

PathLike = Union[str, Path]

DEFAULT_BUILD_CONFIG = "build-config.yaml"
LOADER_CANDIDATES = ("loader.yaml", "loader.yml", "loader.json", "loader.js")

# group 1 is a quoted string (kept); anything else matched is a comment
_STRING_OR_COMMENT = re.compile(r"""('(?:\\.|[^'\\])*'|"(?:\\.|[^"\\])*")|/\*[\s\S]*?\*/|//[^\r\n]*""")
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")

_BUILD_CONFIG_MARKER = re.compile(r"CKBUILDER_CONFIG\s*=\s*")
_LOADER_MARKER = re.compile(r"\bscripts\s*[=:]\s*")


def _balanced_object(text: str, start: int) -> Optional[str]:
    """Return the `{...}` literal starting at or after `start`, honouring quotes."""
    begin = text.find("{", start)
    if begin == -1:
        return None
    depth = 0
    quote = None
    i = begin
    while i < len(text):
        ch = text[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[begin:i + 1]
        i += 1
    return None


def parse_object_literal(literal: str, source: PathLike = "<literal>") -> Any:
    cleaned = _STRING_OR_COMMENT.sub(lambda m: m.group(1) or "", literal)
    cleaned = _TRAILING_COMMA.sub(r"\1", cleaned)
    try:
        return yaml.safe_load(cleaned)
    except yaml.YAMLError as e:
        raise ConfigurationError("Unable to parse object literal", path=source) from e


def extract_object_literal(text: str, marker: "re.Pattern[str]", source: PathLike) -> Any:
    m = marker.search(text)
    if m is None:
        raise ConfigurationError(f"Unable to find {marker.pattern!r}", path=source)
    literal = _balanced_object(text, m.end())
    if literal is None:
        raise ConfigurationError("Unterminated object literal", path=source)
    return parse_object_literal(literal, source)


def load_structured_file(path: PathLike) -> Any:
    """Load a JSON or YAML document (JSON tried first)."""
    raw_text = read_file(path)
    try:
        return json.loads(raw_text)
    except json.JSONDecodeError:
        pass
    try:
        return yaml.safe_load(raw_text)
    except yaml.YAMLError as e:
        raise ConfigurationError("File is neither valid JSON nor YAML", path=path) from e


# ----------------------------------------
# Build configuration
# ----------------------------------------
def resolve_build_config_path(explicit: Optional[PathLike] = None) -> Path:
    if explicit:
        return Path(explicit).resolve()
    env_path = (os.getenv("CKBUILDER_BUILD_CONFIG") or "").strip()
    if env_path:
        return Path(env_path).resolve()
    for candidate in (DEFAULT_BUILD_CONFIG, "build-config.yml", "build-config.json", "build-config.js"):
        p = Path(candidate).resolve()
        if p.exists():
            return p
    return Path(DEFAULT_BUILD_CONFIG).resolve()


def load_build_config(path: PathLike) -> BuildConfig:
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(
            "The build configuration file was not found. Run: ckbuilder generate-build-config SRC",
            path=path,
        )
    if path.suffix == ".js":
        data = extract_object_literal(read_file(path), _BUILD_CONFIG_MARKER, path)
    else:
        data = load_structured_file(path)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration file must hold a mapping, got {type(data).__name__}", path=path
        )
    try:
        return BuildConfig(**data)
    except ValueError as e:
        raise ConfigurationError(f"Configuration file is invalid: {e}", path=path) from e


def _subfolders(root: Path, required_file: str) -> Dict[str, bool]:
    if not root.is_dir():
        return {}
    return {
        child.name: True
        for child in sorted(root.iterdir())
        if (child / required_file).exists()
    }


def create_build_config(source_dir: PathLike, out_path: PathLike) -> Path:
    """Write a build configuration listing every plugin and skin of a source tree."""
    source = Path(source_dir).resolve()
    if not source.exists():
        raise ConfigurationError("Source folder does not exist", path=source)
    if not source.is_dir():
        raise ConfigurationError("Source folder is not a directory", path=source)

    config = {
        "skins": _subfolders(source / "skins", "skin.js"),
        "plugins": _subfolders(source / "plugins", "plugin.js"),
    }

    out = Path(out_path)
    if out.suffix == ".json":
        text = json.dumps(config, indent=2) + "\n"
    else:
        text = yaml.safe_dump(config, sort_keys=False, default_flow_style=False)
    save_file(out, text)
    log.info("Wrote build configuration with %d plugins and %d skins to %s",
             len(config["plugins"]), len(config["skins"]), out)
    return out


def is_ignored_path(path: PathLike, rules: Optional[Sequence[str]]) -> bool:
    """
    A rule without "/" matches the file name; otherwise it must match the end
    of the absolute path.
    """
    if not rules:
        return False
    p = Path(path)
    posix = p.resolve().as_posix()
    for rule in rules:
        if "/" not in rule:
            if p.name == rule:
                return True
        elif posix.endswith(rule):
            return True
    return False


# ----------------------------------------
# Core loader table
# ----------------------------------------
def load_loader_table(core_dir: PathLike) -> Dict[str, List[str]]:
    """Read the core script dependency table (core/loader.{yaml,json,js})."""
    core = Path(core_dir)
    for name in LOADER_CANDIDATES:
        path = core / name
        if not path.exists():
            continue
        if path.suffix == ".js":
            data = extract_object_literal(read_file(path), _LOADER_MARKER, path)
        else:
            data = load_structured_file(path)
            if isinstance(data, dict) and "scripts" in data:
                data = data["scripts"]
        if not isinstance(data, dict) or not data:
            raise ConfigurationError("Unable to get required scripts from loader", path=path)
        return {str(k): [str(d) for d in (v or [])] for k, v in data.items()}
    raise ConfigurationError("Core loader table is missing", path=core / LOADER_CANDIDATES[0])


def find_loader_file(core_dir: PathLike) -> Optional[Path]:
    for name in LOADER_CANDIDATES:
        p = Path(core_dir) / name
        if p.exists():
            return p
    return None
