"""
Assembly of a distributable editor bundle from a source tree.

Source layout:
    ckeditor.js            loader stub
    core/                  base scripts + loader table (loader.yaml/json/js)
    lang/                  core translations
    plugins/<name>/        plugin.js, icons/, icons/hidpi/, lang/
    skins/<name>/          skin.js, icons/, *.css

Target layout: <target>/ckeditor/ with ckeditor.js holding the base scripts,
resolved plugins, skin script and default language, plus generated strips.
"""
from __future__ import annotations

import logging
import re
import time
from pathlib import Path
from typing import Callable, Optional, Tuple, Union

from ckbuilder.core.builder.session import BuildReport, BuildSession
from ckbuilder.core.config.loader import (
    find_loader_file,
    is_ignored_path,
    load_build_config,
    load_loader_table,
    resolve_build_config_path,
)
from ckbuilder.core.config.models import BuildConfig
from ckbuilder.core.css.inliner import merge_css_files
from ckbuilder.core.directives.banners import copyright_header, remove_license_instruction, update_copyrights
from ckbuilder.core.directives.preprocessor import DirectivePreprocessor
from ckbuilder.core.errors import BuildError, ConfigurationError, SourceTreeError
from ckbuilder.core.io.files import (
    DESCEND,
    HANDLED,
    SKIP,
    copy_tree,
    delete_path,
    directory_info,
    fix_line_endings,
    get_extension,
    prepare_target_folder,
    read_file,
    read_files,
    save_file,
)
from ckbuilder.core.javascript.minifier import minify_file
from ckbuilder.core.lang.files import DATA_SUFFIXES, LANGUAGE_CODE, language_files, load_language_file
from ckbuilder.core.lang.merger import TranslationMerger, plugin_lang_script
from ckbuilder.core.observability.metrics import inc_build
from ckbuilder.core.options import BuildOptions
from ckbuilder.core.packaging.archiver import make_tar_gz, make_zip
from ckbuilder.core.resolver.declarations import update_lang_property
from ckbuilder.core.resolver.graph import DependencyResolver
from ckbuilder.core.resolver.tables import PluginDependencyTable
from ckbuilder.core.samples.merger import SamplesMerger
from ckbuilder.core.sprite.composer import SpriteComposer, icons_registration_code

log = logging.getLogger("ckbuilder.build")

PathLike = Union[str, Path]

CORE_ENTRY_POINTS = ("ckeditor", "_bootstrap")

# Stops a second copy of the bundle from re-initialising an already loaded editor.
DOUBLE_LOAD_GUARD = "if(window.CKEDITOR&&window.CKEDITOR.dom)return;"

_PLUGIN_LANG_FILE = re.compile(r"^([a-z]{2}(?:-[a-z]+)?)\.(?:js|json|ya?ml)$")


def wrap_in_function(code: str) -> str:
    return "(function(){" + code + "}());"


class Builder:
    """Runs the assembly pipeline for one source tree and one target folder."""

    def __init__(
        self,
        source_dir: PathLike,
        target_dir: PathLike,
        options: Optional[BuildOptions] = None,
        config: Optional[BuildConfig] = None,
    ):
        self.source = Path(source_dir).resolve()
        self.target_root = Path(target_dir).resolve()
        self.target = self.target_root / "ckeditor"
        self.options = options or BuildOptions()
        self._explicit_config = config
        self.preprocessor = DirectivePreprocessor.from_options(self.options)
        self.composer = SpriteComposer.from_options(self.options)

    # ----------------------------------------
    # Configuration
    # ----------------------------------------
    def read_config(self) -> Tuple[BuildConfig, Path]:
        if self._explicit_config is not None:
            return self._explicit_config.model_copy(deep=True), Path.cwd()
        path = resolve_build_config_path(self.options.build_config)
        return load_build_config(path), path.parent

    def _new_session(self, config: BuildConfig, base_dir: Path) -> BuildSession:
        session = BuildSession(config=config, source=self.source, target=self.target)
        for extra in config.extra_scripts():
            path = (base_dir / extra.path).resolve()
            if not path.exists():
                raise ConfigurationError("File not found. Check the build configuration file.", path=path)
            log.debug("Adding extra file [%s]: %s", extra.placement, extra.path)
            session.extra_files.add(path)
            session.extra_code[extra.placement].append(read_file(path))
        return session

    def validate_source(self, config: BuildConfig) -> None:
        if not self.source.exists():
            raise SourceTreeError("Source folder does not exist", path=self.source)
        if not self.source.is_dir():
            raise SourceTreeError("Source folder is not a directory", path=self.source)

        language = config.language or self.options.fallback_language
        if language not in language_files(self.source / "lang"):
            raise SourceTreeError(
                "The source directory is invalid. Language file is missing",
                path=self.source / "lang" / language,
            )
        if find_loader_file(self.source / "core") is None:
            raise SourceTreeError(
                "The source directory is invalid. Core loader table is missing",
                path=self.source / "core",
            )
        required = ["ckeditor.js", "lang", "plugins"]
        if config.skin:
            required.append(f"skins/{config.skin}/skin.js")
        for rel in required:
            path = self.source / rel
            if not path.exists():
                raise SourceTreeError("The source directory is invalid. The following file is missing", path=path)

    def init(self, session: BuildSession) -> None:
        log.debug("Reading core files from loader")
        loader = load_loader_table(self.source / "core")
        session.core_scripts = DependencyResolver(loader).resolve(CORE_ENTRY_POINTS)

        log.debug("Checking plugins dependency")
        requested = session.config.enabled_plugins()
        if requested:
            table = PluginDependencyTable(self.source / "plugins")
            session.plugin_names = DependencyResolver(table).resolve(requested)
        else:
            session.plugin_names = []
        log.info("Resolved %d core scripts and %d plugins",
                 len(session.core_scripts), len(session.plugin_names))

    # ----------------------------------------
    # Copy step
    # ----------------------------------------
    def _is_unselected_plugin_lang(self, src: Path, session: BuildSession) -> bool:
        if src.parent.name != "lang" or src.parent.parent.parent.name != "plugins":
            return False
        if not (src.parent.parent / "plugin.js").exists():
            return False
        m = _PLUGIN_LANG_FILE.match(src.name)
        if m is None:
            return False
        return m.group(1) not in set(session.config.enabled_languages())

    def copy_files(self, session: BuildSession, context: str) -> None:
        config = session.config
        core_dir = self.source / "core"
        plugins_dir = self.source / "plugins"
        skins_dir = self.source / "skins"

        def before(src: Path, dst: Path) -> int:
            if is_ignored_path(src, config.ignore):
                return SKIP
            if src.resolve() in session.extra_files:
                return SKIP

            if src.is_file():
                if context == "build" and config.languages is not None:
                    if self._is_unselected_plugin_lang(src, session):
                        return SKIP
                if fix_line_endings(src, dst):
                    if self.options.commercial:
                        update_copyrights(dst)
                    flags = self.preprocessor.process_file(dst)
                    if flags.leave_unminified:
                        session.flags[dst.resolve()] = flags
                    return HANDLED
                return DESCEND

            if src == core_dir:
                return SKIP
            # core-only builds
            if not session.plugin_names and src == plugins_dir:
                return SKIP
            if config.skin == "" and src == skins_dir:
                return SKIP
            return DESCEND

        def after(dst: Path) -> None:
            if dst.suffix in DATA_SUFFIXES and self._convert_plugin_lang(dst):
                return
            if self.options.leave_js_unminified or get_extension(dst) != "js":
                return

            flags = session.flags.get(dst.resolve())
            if flags is not None and flags.leave_unminified:
                log.debug("Leaving unminified: %s", dst)
                save_file(dst, remove_license_instruction(read_file(dst)), include_bom=True)
                return

            if (
                context == "build"
                and config.languages is not None
                and dst.name == "plugin.js"
                and dst.parent.parent.name == "plugins"
                and (dst.parent / "lang").exists()
            ):
                text, kept = update_lang_property(read_file(dst), config.enabled_languages())
                if kept is not None:
                    log.debug("Updated lang property in %s", dst)
                    save_file(dst, text, include_bom=True)

            minify_file(dst)

        copy_tree(self.source, self.target, before, after)

    def _convert_plugin_lang(self, dst: Path) -> bool:
        """Turn a copied plugin translation data file into a setLang script."""
        if dst.parent.name != "lang" or dst.parent.parent.parent.name != "plugins":
            return False
        code = dst.name[: -len(dst.suffix)]
        if not LANGUAGE_CODE.match(code):
            return False
        script = dst.with_suffix(".js")
        if not script.exists():
            translation = load_language_file(dst)
            save_file(script, plugin_lang_script(dst.parent.parent.name, code, translation), include_bom=True)
        delete_path(dst)
        return True

    def filter_plugin_folders(self, session: BuildSession) -> None:
        folder = self.target / "plugins"
        if not folder.is_dir():
            return
        keep = session.plugin_set
        for child in sorted(folder.iterdir()):
            if child.is_dir() and child.name not in keep:
                log.debug("Removing unused plugin: %s", child.name)
                delete_path(child)

    def filter_skin_folders(self, selected: str) -> None:
        folder = self.target / "skins"
        if not folder.is_dir():
            return
        for child in sorted(folder.iterdir()):
            if child.name != selected:
                log.debug("Removing unused skin: %s", child.name)
                delete_path(child)

    # ----------------------------------------
    # Sprites + skins
    # ----------------------------------------
    def create_plugins_sprite(self, session: BuildSession) -> str:
        if not session.plugin_names:
            return ""
        log.info("Generating plugins sprite image")
        target_plugins = self.target / "plugins"
        target_plugins.mkdir(parents=True, exist_ok=True)
        source_plugins = self.source / "plugins"

        offsets = self.composer.create_full_sprite(
            source_plugins, None, target_plugins / "icons.png", None,
            session.plugin_names, hidpi=False, include_all=self.options.include_all,
        )
        hidpi_offsets = self.composer.create_full_sprite(
            source_plugins, None, target_plugins / "icons_hidpi.png", None,
            session.plugin_names, hidpi=True, include_all=self.options.include_all,
        )
        return icons_registration_code(offsets, hidpi_offsets)

    def build_skins(self, session: BuildSession) -> None:
        skins = self.target / "skins"
        if not skins.is_dir():
            return
        source_plugins = self.source / "plugins"
        for skin in sorted(p for p in skins.iterdir() if p.is_dir()):
            log.debug("Building skin: %s", skin.name)
            css = skin / "editor.css"
            self.composer.create_full_sprite(
                source_plugins, skin, skin / "icons.png", css,
                session.plugin_names, hidpi=False, include_all=self.options.include_all,
            )
            self.composer.create_full_sprite(
                source_plugins, skin, skin / "icons_hidpi.png", css,
                session.plugin_names, hidpi=True, include_all=self.options.include_all,
            )
            merge_css_files(skin, leave_unminified=self.options.leave_css_unminified)
            delete_path(skin / "icons")

    # ----------------------------------------
    # Core bundle
    # ----------------------------------------
    def create_core(self, session: BuildSession, extra_code: str, apply_guard: bool, context: str) -> Path:
        config = session.config
        code = ""

        if session.extra_code["start"]:
            code += "\n".join(session.extra_code["start"])

        code += read_file(self.source / "core" / "ckeditor_base.js") + "\n"
        code += read_files(session.core_script_files(), "\n")

        if session.extra_code["aftercore"]:
            code += "\n".join(session.extra_code["aftercore"])

        skin_file = session.source_skin_file()
        if skin_file is not None:
            code += read_file(skin_file) + "\n"

        if session.plugin_names:
            code += read_files(session.plugin_files(), "\n") + "\n"
            code += "CKEDITOR.config.plugins='" + ",".join(session.plugin_names) + "';"
        elif context == "build":
            # preprocessed cores get their plugin list from the online builder
            code += "CKEDITOR.config.plugins='';"

        if config.language:
            code += read_file(self.target / "lang" / f"{config.language}.js") + "\n"

        code, _ = self.preprocessor.process(code, is_core=True)
        code = remove_license_instruction(code)

        if extra_code:
            code += extra_code + "\n"

        if context == "build" and config.languages:
            enabled = config.enabled_languages()
            if enabled:
                code += "CKEDITOR.lang.languages={" + ",".join(f'"{c}":1' for c in enabled) + "};"

        if apply_guard:
            code = wrap_in_function(DOUBLE_LOAD_GUARD + code)

        if session.extra_code["end"]:
            code += "".join(session.extra_code["end"])

        self.target.mkdir(parents=True, exist_ok=True)
        target_file = self.target / "ckeditor.js"
        save_file(target_file, code, include_bom=True)

        if not self.options.leave_js_unminified:
            log.info("Minifying ckeditor.js")
            # the bundle gets a single fresh header below
            minify_file(target_file, keep_banner=False)

        eol = "\r\n" if self.options.leave_js_unminified else "\n"
        save_file(
            target_file,
            copyright_header(eol, self.options.commercial) + read_file(target_file),
            include_bom=True,
        )
        log.info("Created ckeditor.js (%dKB)", target_file.stat().st_size // 1024)
        return target_file

    def _skin_extra_code(self, config: BuildConfig) -> str:
        if config.skin:
            return "CKEDITOR.config.skin='" + config.skin + "';"
        return ""

    # ----------------------------------------
    # Cleanup + archives
    # ----------------------------------------
    def delete_unused_files(self, session: BuildSession) -> None:
        delete_path(self.target / "core")
        for name in session.plugin_names:
            folder = self.target / "plugins" / name
            if not folder.is_dir():
                continue
            empty = True
            for child in sorted(folder.iterdir()):
                if child.name in ("icons", "lang", "plugin.js"):
                    delete_path(child)
                else:
                    empty = False
            if empty:
                delete_path(folder)

    def create_archives(self, report: BuildReport) -> None:
        suffix = self.options.archive_suffix()
        total = max(report.size, 1)
        if not self.options.no_zip:
            zip_path = make_zip(self.target, self.target_root / f"ckeditor_{suffix}.zip", "ckeditor")
            size = zip_path.stat().st_size
            log.info("Created %s: %d bytes (%d%% of original)", zip_path.name, size, round(size / total * 100))
            report.archives.append(str(zip_path))
        if not self.options.no_tar:
            tar_path = make_tar_gz(self.target, self.target_root / f"ckeditor_{suffix}.tar.gz", "ckeditor")
            size = tar_path.stat().st_size
            log.info("Created %s: %d bytes (%d%% of original)", tar_path.name, size, round(size / total * 100))
            report.archives.append(str(tar_path))

    # ----------------------------------------
    # Entry points
    # ----------------------------------------
    def _run(self, kind: str, fn: Callable[[], BuildReport]) -> BuildReport:
        started = time.monotonic()
        try:
            report = fn()
        except BuildError:
            inc_build(kind, "failed")
            raise
        inc_build(kind, "ok")
        log.info("%s finished in %.2fs", kind, time.monotonic() - started)
        return report

    def _report(self, session: BuildSession) -> BuildReport:
        info = directory_info(self.target) if self.target.exists() else {"files": 0, "size": 0}
        return BuildReport(
            target=str(self.target),
            core_scripts=list(session.core_scripts),
            plugins=list(session.plugin_names),
            files=info["files"],
            size=info["size"],
        )

    def generate_build(self) -> BuildReport:
        return self._run("build", self._generate_build)

    def _generate_build(self) -> BuildReport:
        config, base_dir = self.read_config()
        self.validate_source(config)
        session = self._new_session(config, base_dir)
        # resolution errors leave an existing target untouched
        self.init(session)

        prepare_target_folder(self.target_root, self.options.overwrite)

        log.info("Copying files (relax, this may take a while)")
        self.copy_files(session, "build")
        if not self.options.include_all:
            self.filter_plugin_folders(session)
            if config.skin:
                self.filter_skin_folders(config.skin)

        log.info("Merging language files")
        merger = TranslationMerger(
            fallback=self.options.fallback_language,
            leave_unminified=self.options.leave_js_unminified,
            commercial=self.options.commercial,
        )
        if not config.language:
            config.language = self.options.fallback_language
        languages = None
        if config.languages is not None:
            languages = config.enabled_languages()
            # the default language is bundled into ckeditor.js
            if config.language not in languages:
                languages.append(config.language)
        merger.merge_all(self.source, self.target / "lang", session.plugin_names, languages)

        icons_code = self.create_plugins_sprite(session)
        log.info("Building ckeditor.js")
        self.create_core(session, self._skin_extra_code(config) + icons_code, True, "build")

        log.info("Building skins")
        self.build_skins(session)
        target_skin = session.target_skin_file()
        if target_skin is not None:
            delete_path(target_skin)

        SamplesMerger(self.preprocessor).merge(self.target)

        log.info("Cleaning up target folder")
        self.delete_unused_files(session)

        report = self._report(session)
        if not (self.options.no_zip and self.options.no_tar):
            log.info("Creating compressed files...")
        self.create_archives(report)

        log.info("Release process completed: %d files, %d bytes", report.files, report.size)
        return report

    def generate_core(self) -> BuildReport:
        return self._run("core", self._generate_core)

    def _generate_core(self) -> BuildReport:
        config, base_dir = self.read_config()
        self.validate_source(config)
        session = self._new_session(config, base_dir)
        self.init(session)

        config.language = None
        icons_code = self.create_plugins_sprite(session)
        log.info("Building ckeditor.js")
        self.create_core(session, self._skin_extra_code(config) + icons_code, True, "build")
        return self._report(session)

    def preprocess(self) -> BuildReport:
        return self._run("preprocess", self._preprocess)

    def _preprocess(self) -> BuildReport:
        config, base_dir = self.read_config()
        config.plugins = {}
        config.skin = ""
        config.language = None

        self.validate_source(config)
        session = self._new_session(config, base_dir)
        self.init(session)
        prepare_target_folder(self.target_root, self.options.overwrite)

        log.info("Copying files (relax, this may take a while)")
        self.copy_files(session, "preprocess")

        log.info("Merging language files")
        lang_dir = self.target / "lang"
        merger = TranslationMerger(fallback=self.options.fallback_language, commercial=self.options.commercial)
        languages = config.enabled_languages() if config.languages is not None else None
        table = merger.merge_all(self.source, lang_dir, [], languages)

        log.info("Processing lang folder")
        merger.write_pseudo_objects(
            {code: t for code, t in table.items() if (lang_dir / f"{code}.js").exists()},
            lang_dir,
        )

        log.info("Building ckeditor.js")
        self.create_core(session, "", False, "preprocess")

        log.info("Cleaning up target folder")
        self.delete_unused_files(session)
        return self._report(session)
