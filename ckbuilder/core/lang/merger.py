from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from ckbuilder.core.directives.banners import copyright_header
from ckbuilder.core.errors import SourceTreeError
from ckbuilder.core.io.files import VCS_DIRS, delete_path, save_file
from ckbuilder.core.lang.files import DATA_SUFFIXES, language_files, load_language_file
from ckbuilder.core.utils.merge import deep_merge
from ckbuilder.core.utils.pretty import pretty_print_object

log = logging.getLogger("ckbuilder.lang")

PathLike = Union[str, Path]
TranslationTable = Dict[str, Dict[str, Any]]


def _compact_json(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"))


def to_pseudo_object(translation: Dict[str, Any]) -> str:
    """JSON members without the enclosing braces."""
    return _compact_json(translation)[1:-1]


def plugin_lang_script(plugin: str, code: str, translation: Dict[str, Any]) -> str:
    return f"CKEDITOR.plugins.setLang('{plugin}','{code}',{_compact_json(translation)});"


class TranslationMerger:
    """
    Merges core and plugin translations into one table per language.

    Every language is layered on top of the fallback language, so missing
    keys fall back to it. Plugin strings are nested under the plugin name.
    """

    def __init__(self, fallback: str = "en", leave_unminified: bool = False, commercial: bool = False):
        self.fallback = fallback
        self.leave_unminified = leave_unminified
        self.commercial = commercial

    # ----------------------------------------
    # Merging
    # ----------------------------------------
    def load_core(self, lang_dir: PathLike, requested: Iterable[str] = ()) -> TranslationTable:
        lang_dir = Path(lang_dir)
        files = language_files(lang_dir)
        if self.fallback not in files:
            raise SourceTreeError(f"Fallback language file is missing: {self.fallback}", path=lang_dir)

        base = load_language_file(files[self.fallback])
        table: TranslationTable = {self.fallback: base}
        for code, path in files.items():
            if code == self.fallback:
                continue
            table[code] = deep_merge(base, load_language_file(path))

        # A requested language without its own file reads as the fallback.
        for code in requested:
            if code not in table:
                log.info("No translation for %r, using %r", code, self.fallback)
                table[code] = deep_merge(base, {})
        return table

    def add_plugin(self, table: TranslationTable, plugin_dir: PathLike) -> None:
        plugin_dir = Path(plugin_dir)
        files = language_files(plugin_dir / "lang")
        if not files:
            return

        if self.fallback in files:
            english = load_language_file(files[self.fallback])
        else:
            log.warning("Plugin %s has no %s translation", plugin_dir.name, self.fallback)
            english = {}

        for code in list(table):
            if code in files:
                own = deep_merge(english, load_language_file(files[code]))
            else:
                own = english
            table[code] = deep_merge(table[code], {plugin_dir.name: own})

    def merge(
        self,
        source_dir: PathLike,
        plugin_names: Iterable[str],
        languages: Optional[Sequence[str]] = None,
    ) -> TranslationTable:
        source = Path(source_dir)
        lang_dir = source / "lang"
        plugins_dir = source / "plugins"
        if not lang_dir.is_dir():
            raise SourceTreeError("Language folder is missing", path=lang_dir)
        if not plugins_dir.is_dir():
            raise SourceTreeError("Plugins folder is missing", path=plugins_dir)

        table = self.load_core(lang_dir, languages or ())
        enabled = set(plugin_names)
        for child in sorted(plugins_dir.iterdir(), key=lambda p: p.name):
            if child.name in VCS_DIRS or not child.is_dir():
                continue
            if child.name in enabled:
                self.add_plugin(table, child)
        return table

    # ----------------------------------------
    # Output
    # ----------------------------------------
    def render(self, code: str, translation: Dict[str, Any]) -> str:
        if self.leave_unminified:
            return (
                copyright_header("\r\n", self.commercial)
                + f"CKEDITOR.lang['{code}'] = {{\n"
                + pretty_print_object(translation, "    ")
                + " }; "
            )
        return copyright_header("\n", self.commercial) + f"CKEDITOR.lang['{code}']=" + _compact_json(translation) + ";"

    def merge_all(
        self,
        source_dir: PathLike,
        target_lang_dir: PathLike,
        plugin_names: Iterable[str],
        languages: Optional[Sequence[str]] = None,
    ) -> TranslationTable:
        """
        Merge translations and write `<code>.js` for each selected language
        (all of them when `languages` is empty). Unselected outputs and copied
        source data files are removed from the target folder.
        """
        table = self.merge(source_dir, plugin_names, languages)
        target = Path(target_lang_dir)
        target.mkdir(parents=True, exist_ok=True)

        selected = set(languages or ())
        written: List[str] = []
        for code, translation in table.items():
            out = target / f"{code}.js"
            if not selected or code in selected:
                save_file(out, self.render(code, translation), include_bom=True)
                written.append(code)
            else:
                delete_path(out)

        for suffix in DATA_SUFFIXES:
            for leftover in target.glob("*" + suffix):
                delete_path(leftover)

        log.info("Wrote %d language files to %s", len(written), target)
        return table

    def write_pseudo_objects(self, table: TranslationTable, target_lang_dir: PathLike) -> None:
        target = Path(target_lang_dir)
        for code, translation in table.items():
            save_file(target / f"{code}.js", to_pseudo_object(translation), include_bom=True)
