from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Tuple, Union

from ckbuilder.core.io.files import BOM, get_extension, read_file, save_file

log = logging.getLogger("ckbuilder.directives")

LEAVE_UNMINIFIED = "%LEAVE_UNMINIFIED%"

# (?<![^\r\n]) anchors at the start of a line for any line break style
_REMOVE_BLOCK = re.compile(r"(?<![^\r\n])[^\r\n]*?%REMOVE_START%[\s\S]*?%REMOVE_END%[^\r\n]*")
_REMOVE_BLOCK_CORE = re.compile(r"(?<![^\r\n])[^\r\n]*?%REMOVE_START_CORE%[\s\S]*?%REMOVE_END_CORE%[^\r\n]*")
_REMOVE_LINE = re.compile(r"[^\r\n]*%REMOVE_LINE%[^\r\n]*(?:\r\n|\r|\n)?")
_REMOVE_LINE_CORE = re.compile(r"[^\r\n]*%REMOVE_LINE_CORE%[^\r\n]*(?:\r\n|\r|\n)?")

_TRIGGERS = ("%VERSION%", "%REV%", "%TIMESTAMP%", "%REMOVE_START", "%REMOVE_END", "%REMOVE_LINE")


@dataclass(frozen=True)
class DirectiveFlags:
    leave_unminified: bool = False


@dataclass(frozen=True)
class DirectiveDefaults:
    version: str = "DEV"
    revision: str = "0"
    timestamp: str = ""


class DirectivePreprocessor:
    """Placeholder substitution and marker-driven block/line removal."""

    def __init__(self, defaults: Optional[DirectiveDefaults] = None):
        self.defaults = defaults or DirectiveDefaults()

    @classmethod
    def from_options(cls, options) -> "DirectivePreprocessor":
        return cls(
            DirectiveDefaults(
                version=str(options.version),
                revision=str(options.revision),
                timestamp=str(options.timestamp),
            )
        )

    def _value(self, substitutions: Mapping[str, object], key: str) -> str:
        value = substitutions.get(key) or getattr(self.defaults, key)
        return "" if value is None else str(value)

    def process_standard(self, text: str, substitutions: Optional[Mapping[str, object]] = None) -> str:
        subs = substitutions or {}

        if "%VERSION%" in text:
            text = text.replace("%VERSION%", self._value(subs, "version"))
        if "%REV%" in text:
            text = text.replace("%REV%", self._value(subs, "revision"))
        if "%TIMESTAMP%" in text:
            text = text.replace("%TIMESTAMP%", self._value(subs, "timestamp"))

        if "%REMOVE_START%" in text and "%REMOVE_END%" in text:
            text = _REMOVE_BLOCK.sub("%REMOVE_LINE%", text)
            text = _REMOVE_LINE.sub("", text)
        elif "%REMOVE_LINE%" in text:
            text = _REMOVE_LINE.sub("", text)
        return text

    def process_core(self, text: str) -> str:
        if "%REMOVE_START_CORE%" in text and "%REMOVE_END_CORE%" in text:
            text = _REMOVE_BLOCK_CORE.sub("%REMOVE_LINE_CORE%", text)
            text = _REMOVE_LINE_CORE.sub("", text)
        elif "%REMOVE_LINE_CORE%" in text:
            text = _REMOVE_LINE_CORE.sub("", text)
        return text

    def process(
        self,
        text: str,
        substitutions: Optional[Mapping[str, object]] = None,
        is_core: bool = False,
    ) -> Tuple[str, DirectiveFlags]:
        flags = DirectiveFlags(leave_unminified=LEAVE_UNMINIFIED in text)
        text = self.process_standard(text, substitutions)
        if is_core:
            text = self.process_core(text)
        return text, flags

    def process_file(
        self,
        path: Union[str, Path],
        substitutions: Optional[Mapping[str, object]] = None,
        is_core: bool = False,
    ) -> DirectiveFlags:
        """Apply directives to a file in place; the file is rewritten only if it changed."""
        original = read_file(path)
        flags = DirectiveFlags(leave_unminified=LEAVE_UNMINIFIED in original)
        if not any(marker in original for marker in _TRIGGERS):
            return flags

        processed, _ = self.process(original, substitutions, is_core)
        if processed != original:
            log.debug("Replaced directives in %s", path)
            keep_bom = get_extension(path) == "js" and _has_bom(path)
            save_file(path, processed, include_bom=keep_bom)
        return flags


def _has_bom(path: Union[str, Path]) -> bool:
    with open(path, "r", encoding="utf-8") as f:
        return f.read(1) == BOM
