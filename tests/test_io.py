import io
import zipfile

import pytest

from conftest import write
from ckbuilder.core.errors import BuildError
from ckbuilder.core.io.files import (
    BOM,
    DESCEND,
    HANDLED,
    SKIP,
    copy_tree,
    directory_info,
    fix_line_endings,
    get_extension,
    prepare_target_folder,
    read_file,
)
from ckbuilder.core.io.workdir import working_directory
from ckbuilder.core.options import BuildOptions


def test_get_extension():
    assert get_extension("a/b/plugin.JS") == "js"
    assert get_extension("README") == ""
    assert get_extension("archive.tar.gz") == "gz"


def test_fix_line_endings_js(tmp_path):
    src = tmp_path / "a.js"
    src.write_bytes(b"var a = 1;   \r\nvar b = 2;\t\n\n\n")
    dst = tmp_path / "b.js"

    assert fix_line_endings(src, dst) is True
    assert dst.read_bytes().decode("utf-8") == BOM + "var a = 1;\nvar b = 2;\n"


def test_fix_line_endings_css_drops_bom(tmp_path):
    src = tmp_path / "a.css"
    src.write_bytes((BOM + ".a {}  \n").encode("utf-8"))
    dst = tmp_path / "b.css"

    assert fix_line_endings(src, dst) is True
    assert dst.read_bytes().decode("utf-8") == ".a {}\n"


def test_fix_line_endings_binary(tmp_path):
    src = tmp_path / "a.png"
    src.write_bytes(b"\x89PNG")
    assert fix_line_endings(src, tmp_path / "b.png") is False
    assert not (tmp_path / "b.png").exists()


def test_read_file_strips_bom(tmp_path):
    p = tmp_path / "x.js"
    p.write_bytes((BOM + "x").encode("utf-8"))
    assert read_file(p) == "x"


def test_read_file_missing(tmp_path):
    with pytest.raises(BuildError):
        read_file(tmp_path / "missing.js")


def test_copy_tree_verdicts(tmp_path):
    src = tmp_path / "src"
    write(src / "keep.txt", "keep")
    write(src / "skip.txt", "skip")
    write(src / "handled.txt", "original")
    write(src / "skipped" / "x.txt", "x")
    write(src / "emptied" / "skip.txt", "gone")
    write(src / ".svn" / "entries", "vcs")

    def before(s, d):
        if s.name in ("skip.txt", "skipped"):
            return SKIP
        if s.name == "handled.txt":
            d.write_text("handled", encoding="utf-8")
            return HANDLED
        return DESCEND

    written = []
    copy_tree(src, tmp_path / "dst", before, lambda d: written.append(d.name))

    dst = tmp_path / "dst"
    assert sorted(p.name for p in dst.iterdir()) == ["handled.txt", "keep.txt"]
    assert (dst / "handled.txt").read_text(encoding="utf-8") == "handled"
    assert sorted(written) == ["handled.txt", "keep.txt"]


def test_prepare_target_folder(tmp_path):
    target = prepare_target_folder(tmp_path / "out", overwrite=False)
    assert target.is_dir()

    with pytest.raises(BuildError, match="Target folder already exists"):
        prepare_target_folder(tmp_path / "out", overwrite=False)

    write(target / "old.txt", "old")
    prepare_target_folder(tmp_path / "out", overwrite=True)
    assert not (target / "old.txt").exists()


def test_directory_info(tmp_path):
    write(tmp_path / "d" / "a.txt", "abc")
    write(tmp_path / "d" / "sub" / "b.txt", "de")
    assert directory_info(tmp_path / "d") == {"files": 2, "size": 5}


def test_working_directory_zip(tmp_path):
    archive = tmp_path / "ext.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("ext/plugin.js", "x")

    with working_directory(archive) as root:
        assert (root / "ext" / "plugin.js").is_file()
        extracted = root
    assert not extracted.exists()


def _zip_bytes(entries):
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return buf.getvalue()


def test_working_directory_nested_archives(tmp_path):
    archive = tmp_path / "outer.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("a.zip", _zip_bytes({"a/plugin.js": "a"}))
        zf.writestr("b.zip", _zip_bytes({"b/skin.js": "b", "c.zip": _zip_bytes({"c/x.css": "c"})}))
        zf.writestr("readme.txt", "r")

    with working_directory(archive) as root:
        assert (root / "a" / "plugin.js").is_file()
        assert (root / "b" / "skin.js").is_file()
        assert (root / "c" / "x.css").is_file()
        assert not list(root.rglob("*.zip"))


def test_working_directory_rejects_escaping_entries(tmp_path):
    archive = tmp_path / "evil.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("../evil.js", "x")

    with pytest.raises(BuildError, match="escapes"):
        with working_directory(archive):
            pass


def test_working_directory_missing(tmp_path):
    with pytest.raises(BuildError, match="does not exist"):
        with working_directory(tmp_path / "missing.zip"):
            pass


def test_options_archive_suffix():
    assert BuildOptions(version="4.5 Beta").archive_suffix() == "4.5_beta"
    assert BuildOptions().archive_suffix() == "dev"


def test_options_from_env(monkeypatch):
    monkeypatch.setenv("CKBUILDER_VERSION", "4.2")
    monkeypatch.setenv("CKBUILDER_LEAVE_JS_UNMINIFIED", "yes")
    monkeypatch.setenv("CKBUILDER_DEFAULT_LANGUAGE", "de")

    options = BuildOptions.from_env(revision="123", overwrite=None)
    assert options.version == "4.2"
    assert options.revision == "123"
    assert options.leave_js_unminified is True
    assert options.fallback_language == "de"
    assert options.overwrite is False

    assert BuildOptions.from_env(version="5.0").version == "5.0"
