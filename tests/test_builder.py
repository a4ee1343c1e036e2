import tarfile
import zipfile

import pytest

from conftest import write
from ckbuilder.core.builder.orchestrator import DOUBLE_LOAD_GUARD, Builder, wrap_in_function
from ckbuilder.core.config.models import BuildConfig
from ckbuilder.core.errors import BuildError, ConfigurationError, MissingDependencyError, SourceTreeError
from ckbuilder.core.io.files import BOM
from ckbuilder.core.observability.metrics import snapshot_named
from ckbuilder.core.options import BuildOptions


def _read(path):
    # keep CRLF as written
    return path.read_bytes().decode("utf-8")


def test_wrap_in_function():
    assert wrap_in_function("a();") == "(function(){a();}());"


def test_generate_build_release_layout(source_tree, tmp_path, build_config, quiet_options):
    out = tmp_path / "out"
    report = Builder(source_tree, out, quiet_options, config=build_config).generate_build()

    assert report.core_scripts == ["event", "ckeditor", "env", "_bootstrap"]
    assert report.plugins == ["util", "basic"]
    assert report.files > 0
    assert report.archives == []

    release = out / "ckeditor"
    assert not (release / "core").exists()

    core = _read(release / "ckeditor.js")
    assert core.startswith(BOM + "/*\nCopyright")
    assert core.count("Copyright") == 1
    assert "CKEDITOR.config.plugins='util,basic';" in core
    assert "CKEDITOR.config.skin='moono';" in core
    # plugin.js bodies follow resolution order
    assert core.index("CKEDITOR.plugins.add('util'") < core.index("CKEDITOR.plugins.add('basic'")
    assert DOUBLE_LOAD_GUARD in core
    assert "version:'DEV'" in core
    assert "bootstrapped" not in core
    assert "CKEDITOR.ready=1" in core
    assert "setIcons('basic,0,auto','icons.png')" in core


def test_generate_build_languages_and_plugins(source_tree, tmp_path, build_config, quiet_options):
    out = tmp_path / "out"
    Builder(source_tree, out, quiet_options, config=build_config).generate_build()
    release = out / "ckeditor"

    assert sorted(p.name for p in (release / "lang").iterdir()) == ["de.js", "en.js"]
    de = _read(release / "lang" / "de.js")
    assert "CKEDITOR.lang['de']=" in de
    assert '"basic":{"title":"Einfach"}' in de
    # untranslated keys fall back to English
    assert '"common":{"ok":"OK"}' in de

    plugins = release / "plugins"
    assert (plugins / "icons.png").is_file()
    assert (plugins / "icons_hidpi.png").is_file()
    # bundled plugins keep only what ckeditor.js does not contain
    assert (plugins / "basic" / "dialogs" / "basic.js").is_file()
    assert not (plugins / "basic" / "plugin.js").exists()
    assert not (plugins / "basic" / "lang").exists()
    assert not (plugins / "util").exists()
    # not requested, but copied because omitted plugins are kept by default
    assert (plugins / "unused" / "plugin.js").is_file()


def test_generate_build_skin(source_tree, tmp_path, build_config, quiet_options):
    out = tmp_path / "out"
    Builder(source_tree, out, quiet_options, config=build_config).generate_build()
    skin = out / "ckeditor" / "skins" / "moono"

    editor = _read(skin / "editor.css")
    assert ".cke_reset{margin:0}" in editor
    assert ".cke_button__basic_icon" in editor
    assert "@import" not in editor
    assert not (skin / "reset.css").exists()
    assert (skin / "dialog.css").is_file()
    assert not (skin / "skin.js").exists()
    assert (skin / "icons.png").is_file()
    assert (skin / "icons_hidpi.png").is_file()


def test_generate_build_skip_omitted_and_language_filter(source_tree, tmp_path, quiet_options):
    write(source_tree / "lang" / "fr.json", '{"editor": "Editeur"}')
    write(source_tree / "skins" / "kama" / "skin.js", "CKEDITOR.skin.name = 'kama';\n")
    config = BuildConfig(skin="moono", plugins={"basic": True}, languages={"de": True})
    options = quiet_options.model_copy(update={"include_all": False})

    out = tmp_path / "out"
    Builder(source_tree, out, options, config=config).generate_build()
    release = out / "ckeditor"

    # the default language is always written
    assert sorted(p.name for p in (release / "lang").iterdir()) == ["de.js", "en.js"]
    assert not (release / "plugins" / "unused").exists()
    assert sorted(p.name for p in (release / "skins").iterdir()) == ["moono"]

    core = _read(release / "ckeditor.js")
    assert 'CKEDITOR.lang.languages={"de":1};' in core


def test_generate_build_archives(source_tree, tmp_path, build_config):
    out = tmp_path / "out"
    options = BuildOptions(version="4.5 Beta")
    report = Builder(source_tree, out, options, config=build_config).generate_build()

    zip_path = out / "ckeditor_4.5_beta.zip"
    tar_path = out / "ckeditor_4.5_beta.tar.gz"
    assert report.archives == [str(zip_path), str(tar_path)]

    with zipfile.ZipFile(zip_path) as zf:
        names = zf.namelist()
    assert "ckeditor/ckeditor.js" in names
    assert all(n.startswith("ckeditor/") for n in names)

    with tarfile.open(tar_path, "r:gz") as tar:
        assert "ckeditor/ckeditor.js" in tar.getnames()

    assert "version:'4.5 Beta'" in _read(out / "ckeditor" / "ckeditor.js")


def test_generate_build_leave_js_unminified(source_tree, tmp_path, build_config, quiet_options):
    out = tmp_path / "out"
    options = quiet_options.model_copy(update={"leave_js_unminified": True})
    Builder(source_tree, out, options, config=build_config).generate_build()

    core = _read(out / "ckeditor" / "ckeditor.js")
    assert core.startswith(BOM + "/*\r\nCopyright")
    assert "version: 'DEV'" in core
    assert "CKEDITOR.lang['en'] = {" in _read(out / "ckeditor" / "lang" / "en.js")


def test_generate_build_extra_js(source_tree, tmp_path, quiet_options, monkeypatch):
    extra = write(tmp_path / "extra" / "hello.js", "window.HELLO = 1;\n")
    monkeypatch.chdir(tmp_path)
    config = BuildConfig(skin="moono", plugins={"basic": True}, js=[f"{extra},start"])

    out = tmp_path / "out"
    Builder(source_tree, out, quiet_options, config=config).generate_build()
    core = _read(out / "ckeditor" / "ckeditor.js")
    assert "window.HELLO=1" in core


def test_generate_build_missing_extra_js(source_tree, tmp_path, quiet_options, monkeypatch):
    monkeypatch.chdir(tmp_path)
    config = BuildConfig(plugins={"basic": True}, js=["nope.js"])
    with pytest.raises(ConfigurationError):
        Builder(source_tree, tmp_path / "out", quiet_options, config=config).generate_build()


def test_generate_build_existing_target(source_tree, tmp_path, build_config, quiet_options):
    out = tmp_path / "out"
    out.mkdir()
    with pytest.raises(BuildError, match="Target folder already exists"):
        Builder(source_tree, out, quiet_options, config=build_config).generate_build()
    assert snapshot_named()["builds_build_failed"] == 1


def test_generate_build_overwrite(source_tree, tmp_path, build_config, quiet_options):
    out = tmp_path / "out"
    write(out / "stale.txt", "old")
    options = quiet_options.model_copy(update={"overwrite": True})
    Builder(source_tree, out, options, config=build_config).generate_build()
    assert not (out / "stale.txt").exists()
    assert snapshot_named()["builds_build_ok"] == 1


def test_unresolvable_plugin_keeps_previous_release(source_tree, tmp_path, quiet_options):
    out = tmp_path / "out"
    previous = write(out / "ckeditor" / "ckeditor.js", "previous release")
    options = quiet_options.model_copy(update={"overwrite": True})
    config = BuildConfig(plugins={"ghost": True})

    with pytest.raises(MissingDependencyError):
        Builder(source_tree, out, options, config=config).generate_build()
    assert previous.read_text(encoding="utf-8") == "previous release"


def test_broken_loader_table_keeps_previous_preprocess(source_tree, tmp_path, quiet_options):
    write(source_tree / "core" / "loader.yaml", "scripts:\n  ckeditor: [ghost]\n  _bootstrap: []\n")
    out = tmp_path / "out"
    previous = write(out / "ckeditor" / "ckeditor.js", "previous core")
    options = quiet_options.model_copy(update={"overwrite": True})

    with pytest.raises(MissingDependencyError):
        Builder(source_tree, out, options, config=BuildConfig()).preprocess()
    assert previous.read_text(encoding="utf-8") == "previous core"


def test_invalid_source_tree(tmp_path, build_config, quiet_options):
    with pytest.raises(SourceTreeError, match="does not exist"):
        Builder(tmp_path / "missing", tmp_path / "out", quiet_options, config=build_config).generate_build()


def test_missing_skin(source_tree, tmp_path, quiet_options):
    config = BuildConfig(skin="kama", plugins={})
    with pytest.raises(SourceTreeError) as exc:
        Builder(source_tree, tmp_path / "out", quiet_options, config=config).generate_build()
    assert exc.value.path.endswith("skin.js")


def test_missing_default_language(source_tree, tmp_path, quiet_options):
    config = BuildConfig(language="pl", plugins={})
    with pytest.raises(SourceTreeError, match="Language file is missing"):
        Builder(source_tree, tmp_path / "out", quiet_options, config=config).generate_build()


def test_generate_core_only(source_tree, tmp_path, build_config, quiet_options):
    out = tmp_path / "out"
    report = Builder(source_tree, out, quiet_options, config=build_config).generate_core()
    release = out / "ckeditor"

    assert report.plugins == ["util", "basic"]
    assert sorted(p.name for p in release.iterdir()) == ["ckeditor.js", "plugins"]
    core = _read(release / "ckeditor.js")
    assert "CKEDITOR.config.plugins='util,basic';" in core
    assert "CKEDITOR.lang['en']" not in core
    assert snapshot_named()["builds_core_ok"] == 1


def test_preprocess(source_tree, tmp_path, build_config, quiet_options):
    out = tmp_path / "out"
    Builder(source_tree, out, quiet_options, config=build_config).preprocess()
    release = out / "ckeditor"

    assert not (release / "plugins").exists()
    assert not (release / "skins").exists()
    assert not (release / "core").exists()

    en = _read(release / "lang" / "en.js")
    assert en == BOM + '"editor":"Rich Text Editor","common":{"ok":"OK"}'

    core = _read(release / "ckeditor.js")
    assert DOUBLE_LOAD_GUARD not in core
    assert "CKEDITOR.config.plugins" not in core
    assert "CKEDITOR.config.skin" not in core
