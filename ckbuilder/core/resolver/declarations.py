"""
Line scanner for module declarations in plugin scripts.

A plugin script registers itself with `CKEDITOR.plugins.add( 'name', {...} )`
(or assigns `CKEDITOR.plugins.<name> = ...`). Inside that declaration the
`requires` and `lang` properties are read or rewritten line by line:

    SEARCHING --(declaration start)--> IN_DECLARATION
    IN_DECLARATION --(more than 5 unrelated lines)--> SEARCHING
    IN_DECLARATION --(property found)--> DONE
"""
from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

log = logging.getLogger("ckbuilder.resolver")

MAX_UNRELATED_LINES = 5

_BLOCK_COMMENTS = re.compile(r"/\*[^\r\n]*[\r\n]+([\s\S]*?)[\r\n]+[^\r\n]*\*+/")
_PLUGINS_ADD = re.compile(r"CKEDITOR\.plugins\.add\s*\(\s*(['\"]?)([a-zA-Z0-9-_]+)(['\"]?)")
_PLUGINS_DEF = re.compile(r"CKEDITOR\.plugins\.[a-z-_0-9]+\s*=\s*")
_PLUGINS_ADD_NAMED = re.compile(r"CKEDITOR\.plugins\.add\s*\(\s*(['\"])([a-zA-Z0-9-_]+)(['\"])")
_PLUGIN_NAME_VAR = re.compile(r"var\s+pluginName\s*=\s*(['\"])([a-zA-Z0-9-_]+)(['\"])")
_SKIN_NAME = re.compile(r"CKEDITOR\.skin\.name\s*=\s*(['\"])([a-zA-Z0-9-_]+)(['\"])")

_REQUIRES_ARRAY = re.compile(r"^\s*requires\s*:\s*\[\s*(.*?)\s*\]")
_REQUIRES_STRING = re.compile(r"^\s*requires\s*:\s*(['\"])\s*((?:[a-z0-9-_]+|\s*,\s*)+?)(['\"])\s*")
_LANG_STRING = re.compile(r"^(\s*lang\s*:\s*)(['\"])(\s*(?:[a-z-_]+|\s*,\s*)+?)((['\"])\s*.*$)")
_KNOWN_PROPERTY = re.compile(r"(^\s*icons\s*:\s*|^\s*requires\s*:\s*|^\s*lang\s*:\s*|^\s*$|^\s*//)")

_QUOTES_AND_SPACES = re.compile(r"['\" ]")


class ScanState(enum.Enum):
    SEARCHING = "searching"
    IN_DECLARATION = "in_declaration"
    DONE = "done"


@dataclass
class DeclarationScanner:
    """Tracks whether a given line sits inside a module declaration."""

    state: ScanState = ScanState.SEARCHING
    unrelated_lines: int = 0
    _opening_line: bool = False

    def feed(self, line: str) -> bool:
        """Advance by one line; returns True when `line` should be inspected."""
        if self.state is ScanState.DONE:
            return False

        if self.state is ScanState.SEARCHING:
            if _PLUGINS_ADD.search(line) or _PLUGINS_DEF.search(line):
                self.state = ScanState.IN_DECLARATION
                self.unrelated_lines = 0
                self._opening_line = True
                return True
            return False

        # The opening line itself is not counted against the tolerance.
        self._opening_line = False
        return True

    def settle(self, line: str) -> None:
        """Account for an inspected line that did not hold the wanted property."""
        if self.state is not ScanState.IN_DECLARATION or self._opening_line:
            return
        if not _KNOWN_PROPERTY.search(line):
            self.unrelated_lines += 1
        if self.unrelated_lines > MAX_UNRELATED_LINES:
            self.state = ScanState.SEARCHING

    def finish(self) -> None:
        self.state = ScanState.DONE


def strip_block_comments(text: str) -> str:
    return _BLOCK_COMMENTS.sub("", text)


def _split_names(raw: str) -> List[str]:
    return [n for n in _QUOTES_AND_SPACES.sub("", raw).split(",") if n]


def _scan(lines: Iterable[str]) -> Iterator[Tuple[int, str, DeclarationScanner]]:
    scanner = DeclarationScanner()
    for idx, line in enumerate(lines):
        if scanner.feed(line):
            yield idx, line, scanner
            scanner.settle(line)
        if scanner.state is ScanState.DONE:
            return


def has_declaration(text: str) -> bool:
    return any(_PLUGINS_ADD.search(line) or _PLUGINS_DEF.search(line) for line in text.split("\n"))


def extract_requires(text: str, source: str = "<plugin>") -> List[str]:
    """Names listed by the first `requires` property inside a declaration."""
    stripped = strip_block_comments(text)
    lines = stripped.split("\n")

    for _idx, line, scanner in _scan(lines):
        m = _REQUIRES_ARRAY.search(line)
        if m is None:
            m2 = _REQUIRES_STRING.search(line)
            raw = m2.group(2) if m2 else None
        else:
            raw = m.group(1)
        if raw is not None:
            scanner.finish()
            names = _split_names(raw)
            log.debug("Found requires in %s: %s", source, ",".join(names))
            return names

    if not has_declaration(stripped):
        log.warning("No module declaration found in %s", source)
    else:
        log.debug("No requires property in %s", source)
    return []


def update_lang_property(text: str, languages: Sequence[str]) -> Tuple[str, Optional[List[str]]]:
    """
    Restrict the `lang: '...'` property to the selected languages it lists.

    Returns the (possibly rewritten) text and the kept languages, or None when
    nothing was changed. The property is left alone when none of its
    languages is selected or when all of them are.
    """
    lines = text.split("\n")
    selected = list(languages)

    for idx, line, scanner in _scan(lines):
        m = _LANG_STRING.search(line)
        if m is None:
            continue
        listed = _split_names(m.group(3))
        kept = [code for code in selected if code in listed]
        if not kept:
            continue
        scanner.finish()
        if len(kept) == len(listed):
            return text, None
        lines[idx] = m.group(1) + m.group(2) + ",".join(kept) + m.group(4)
        return "\r\n".join(line.rstrip("\r") for line in lines), kept

    return text, None


def find_plugin_name(text: str) -> Optional[str]:
    m = _PLUGINS_ADD_NAMED.search(text) or _PLUGIN_NAME_VAR.search(text)
    return m.group(2) if m else None


def find_skin_name(text: str) -> Optional[str]:
    m = _SKIN_NAME.search(text)
    return m.group(2) if m else None
