import json
import os
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from ckbuilder.api.main import app
from ckbuilder.core.config.models import BuildConfig
from ckbuilder.core.observability.metrics import reset_metrics
from ckbuilder.core.options import BuildOptions


@pytest.fixture(scope="session", autouse=True)
def _force_test_env():
    # Deterministic options regardless of the developer shell
    for key in (
        "CKBUILDER_DEFAULT_LANGUAGE",
        "CKBUILDER_VERSION",
        "CKBUILDER_REVISION",
        "CKBUILDER_LEAVE_JS_UNMINIFIED",
        "CKBUILDER_LEAVE_CSS_UNMINIFIED",
        "CKBUILDER_BUILD_CONFIG",
        "CKBUILDER_API_ROOT",
    ):
        os.environ.pop(key, None)


@pytest.fixture(autouse=True)
def _clean_metrics():
    reset_metrics()
    yield
    reset_metrics()


@pytest.fixture()
def client():
    return TestClient(app)


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def make_png(path: Path, width: int = 16, height: int = 16, color=(255, 0, 0, 255)) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGBA", (width, height), color).save(str(path), format="PNG")
    return path


@pytest.fixture()
def png():
    return make_png


@pytest.fixture()
def source_tree(tmp_path: Path) -> Path:
    """
    Small editor source tree:
      core: event, ckeditor, env, _bootstrap (+ ckeditor_base)
      plugins: basic (requires util, has icon + translations), util, unused
      skins: moono (editor.css imports reset.css)
    """
    src = tmp_path / "src"
    write(src / "ckeditor.js", "// loader stub\nCKEDITOR_LOADER = true;\n")

    write(src / "core" / "ckeditor_base.js", "var CKEDITOR = { version: '%VERSION%', rev: '%REV%' };\n")
    write(src / "core" / "event.js", "CKEDITOR.event = function() {};\n")
    write(src / "core" / "ckeditor.js", "CKEDITOR.status = 'loaded';\n")
    write(src / "core" / "env.js", "CKEDITOR.env = { ie: false };\n")
    write(src / "core" / "_bootstrap.js", "CKEDITOR.bootstrapped = true; // %REMOVE_LINE_CORE%\nCKEDITOR.ready = 1;\n")
    write(
        src / "core" / "loader.yaml",
        "scripts:\n"
        "  ckeditor: [ckeditor_base, event]\n"
        "  _bootstrap: [ckeditor, env]\n"
        "  event: []\n"
        "  env: []\n",
    )

    write(src / "lang" / "en.json", json.dumps({"editor": "Rich Text Editor", "common": {"ok": "OK"}}))
    write(src / "lang" / "de.json", json.dumps({"editor": "Editor"}))

    write(
        src / "plugins" / "basic" / "plugin.js",
        "CKEDITOR.plugins.add( 'basic', {\n"
        "\trequires: 'util',\n"
        "\tlang: 'en,de',\n"
        "\ticons: 'basic',\n"
        "\tinit: function( editor ) {}\n"
        "} );\n",
    )
    make_png(src / "plugins" / "basic" / "icons" / "basic.png")
    write(src / "plugins" / "basic" / "lang" / "en.json", json.dumps({"title": "Basic"}))
    write(src / "plugins" / "basic" / "lang" / "de.json", json.dumps({"title": "Einfach"}))
    write(src / "plugins" / "basic" / "dialogs" / "basic.js", "CKEDITOR.dialog.add( 'basic', function() {} );\n")

    write(src / "plugins" / "util" / "plugin.js", "CKEDITOR.plugins.add( 'util', {\n\tinit: function() {}\n} );\n")
    write(src / "plugins" / "unused" / "plugin.js", "CKEDITOR.plugins.add( 'unused', {} );\n")

    write(src / "skins" / "moono" / "skin.js", "CKEDITOR.skin.name = 'moono';\n")
    write(src / "skins" / "moono" / "editor.css", '@import url("reset.css");\n.cke_editor { color: red; }\n')
    write(src / "skins" / "moono" / "reset.css", ".cke_reset { margin: 0; }\n")
    write(src / "skins" / "moono" / "dialog.css", ".cke_dialog { color: blue; }\n")
    return src


@pytest.fixture()
def build_config() -> BuildConfig:
    return BuildConfig(skin="moono", plugins={"basic": True, "unused": False})


@pytest.fixture()
def quiet_options() -> BuildOptions:
    return BuildOptions(no_zip=True, no_tar=True)
