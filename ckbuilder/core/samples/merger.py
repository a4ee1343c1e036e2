"""
Links plugin samples into the release samples index.

Every `plugins/<name>/samples/` folder is moved to `samples/old/<name>/`.
HTML pages carrying `ckeditor-sample-*` meta tags are listed in
`samples/old/index.html` in place of the section markers.
"""
from __future__ import annotations

import logging
import re
import shutil
from pathlib import Path
from typing import Dict, Optional, Union

from ckbuilder.core.directives.preprocessor import DirectivePreprocessor
from ckbuilder.core.io.files import VCS_DIRS, delete_path, get_extension, read_file, save_file

log = logging.getLogger("ckbuilder.samples")

PathLike = Union[str, Path]

SAMPLES_FOLDER = "samples/old"

_PLUGINS_SAMPLES = re.compile(r"<!--\s*PLUGINS_SAMPLES\s*?-->")
_ADVANCED_SAMPLES = re.compile(r"<!--\s*ADVANCED_SAMPLES\s*-->")
_INLINE_EDITING_SAMPLES = re.compile(r"<!--\s*INLINE_EDITING_SAMPLES\s*-->")
_META_TAG = re.compile(r"<meta([\s\S]*?)>")
_META_NAME = re.compile(r'name="([\s\S]*?)"')
_META_CONTENT = re.compile(r'content="([\s\S]*?)"')
_ALLOWED_TAGS = re.compile(r"&lt;(/?(?:code|strong|em))&gt;")

GROUPS = ("Inline Editing", "Advanced Samples", "Plugins")

SampleMeta = Dict[str, str]


def meta_information(html: str) -> SampleMeta:
    """`ckeditor-sample-*` meta tags of a page; `group` defaults to Plugins."""
    meta: SampleMeta = {}
    for m in _META_TAG.finditer(html):
        name = _META_NAME.search(m.group(1))
        content = _META_CONTENT.search(m.group(1))
        if name and content:
            key = re.sub(r"^ckeditor-sample-", "", name.group(1))
            meta[key] = content.group(1)

    if meta.get("group") not in ("Inline Editing", "Advanced Samples"):
        meta["group"] = "Plugins"
    return meta


def link_to_sample(url: str, meta: SampleMeta) -> str:
    if not meta.get("name"):
        return ""
    description = _ALLOWED_TAGS.sub(r"<\1>", meta.get("description", ""))

    out = ["\n", '<dt><a class="samples" href="', url, '">', meta["name"], "</a>"]
    if meta.get("isnew"):
        out.append(' <span class="new">New!</span>')
    if meta.get("isbeta"):
        out.append(' <span class="beta">Beta</span>')
    out.append("</dt>\n")
    out.append("<dd>" + description + "</dd>\n")
    return "".join(out)


def plugins_section(html: str) -> str:
    if not html:
        return ""
    return '<h2 class="samples">Plugins</h2>\n<dl class="samples">' + html + "</dl>"


class SamplesMerger:
    """One merge run; collected sample pages live on the instance."""

    def __init__(self, preprocessor: Optional[DirectivePreprocessor] = None):
        self.preprocessor = preprocessor or DirectivePreprocessor()
        # beta first, then new, then the rest
        self.samples: Dict[str, Dict[str, SampleMeta]] = {"beta": {}, "new": {}, "normal": {}}

    def merge(self, release_dir: PathLike) -> bool:
        """Returns True when the index was rewritten with sample links."""
        release = Path(release_dir)
        samples = release / SAMPLES_FOLDER
        if not samples.is_dir():
            log.debug("%s dir not found in %s", SAMPLES_FOLDER, release)
            return False
        index = samples / "index.html"
        if not index.is_file():
            log.debug("index.html not found in %s", samples)
            return False

        html, _ = self.preprocessor.process(read_file(index))
        if not any(marker in html for marker in ("PLUGINS_SAMPLES", "ADVANCED_SAMPLES", "INLINE_EDITING_SAMPLES")):
            log.debug("%s/index.html has no sample markers", SAMPLES_FOLDER)
            save_file(index, html, include_bom=True)
            return False

        self._collect_plugin_samples(release)

        sections = {group: "" for group in GROUPS}
        for kind in ("beta", "new", "normal"):
            for url, meta in self.samples[kind].items():
                sections[meta["group"]] += link_to_sample(url, meta)

        html = _PLUGINS_SAMPLES.sub(lambda _: plugins_section(sections["Plugins"]), html, count=1)
        html = _INLINE_EDITING_SAMPLES.sub(lambda _: sections["Inline Editing"], html, count=1)
        html = _ADVANCED_SAMPLES.sub(lambda _: sections["Advanced Samples"], html, count=1)
        save_file(index, html, include_bom=True)
        log.info("Linked %d plugin samples", sum(len(v) for v in self.samples.values()))
        return True

    def _collect_plugin_samples(self, release: Path) -> None:
        plugins = release / "plugins"
        if not plugins.is_dir():
            return
        for child in sorted(plugins.iterdir(), key=lambda p: p.name):
            if child.name in VCS_DIRS:
                continue
            folder = child / "samples"
            if folder.is_dir():
                self._move(folder, release / SAMPLES_FOLDER / child.name, child.name)
                delete_path(folder)

    def _move(self, source: Path, target: Path, url: str) -> None:
        if source.is_dir():
            target.mkdir(parents=True, exist_ok=True)
            for child in sorted(source.iterdir(), key=lambda p: p.name):
                if child.name in VCS_DIRS:
                    continue
                self._move(child, target / child.name, url + "/" + child.name)
            if not any(target.iterdir()):
                target.rmdir()
            return

        shutil.copyfile(source, target)
        if get_extension(source) != "html":
            return
        text = read_file(source)
        if "ckeditor-sample-name" not in text:
            return

        meta = meta_information(text)
        if meta.get("isbeta"):
            self.samples["beta"][url] = meta
        elif meta.get("isnew"):
            self.samples["new"][url] = meta
        else:
            self.samples["normal"][url] = meta
