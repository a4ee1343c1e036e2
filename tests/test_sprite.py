import logging

import pytest
from PIL import Image

from ckbuilder.core.errors import SpriteDimensionError
from ckbuilder.core.observability.metrics import snapshot_named
from ckbuilder.core.sprite import SpriteComposer
from ckbuilder.core.sprite.composer import icons_registration_code
from ckbuilder.core.sprite.icons import (
    IncludeAllIconPolicy,
    ResolvedModulesIconPolicy,
    apply_theme_overrides,
    find_icons,
)


def test_rtl_variant_gets_its_own_rule(tmp_path, png):
    icons = tmp_path / "plugins" / "a" / "icons"
    png(icons / "A.png", 20, 18)
    png(icons / "A-rtl.png", 20, 18)
    out_png = tmp_path / "icons.png"
    out_css = tmp_path / "editor.css"

    offsets = SpriteComposer(timestamp="T").compose(
        sorted(str(p) for p in icons.iterdir()), out_png, out_css
    )

    with Image.open(out_png) as strip:
        assert strip.size == (20, 52)

    css = out_css.read_text(encoding="utf-8")
    assert ".cke_rtl .cke_button__A_icon" in css
    assert ".cke_ltr .cke_button__A_icon {background: url(icons.png?t=T) no-repeat 0 -26px !important;}" in css
    assert offsets == "A-rtl,0,auto,A,26,auto"


def test_oversized_icon_is_left_out(tmp_path, png, caplog):
    small = png(tmp_path / "icons" / "small.png", 16, 16)
    big = png(tmp_path / "icons" / "big.png", 120, 20)
    out_png = tmp_path / "icons.png"

    with caplog.at_level(logging.WARNING, logger="ckbuilder.sprite"):
        offsets = SpriteComposer().compose([str(big), str(small)], out_png)

    with Image.open(out_png) as strip:
        assert strip.size == (16, 24)
    assert offsets == "small,0,auto"
    assert "too big" in caplog.text
    assert snapshot_named()["sprite_icons_rejected"] == 1


def test_hidpi_icons_use_half_offsets(tmp_path, png):
    hidpi = tmp_path / "plugins" / "a" / "icons" / "hidpi"
    first = png(hidpi / "a.png", 32, 32)
    second = png(hidpi / "b.png", 32, 32)
    out_css = tmp_path / "editor.css"

    offsets = SpriteComposer(timestamp="T").compose([str(first), str(second)], tmp_path / "s.png", out_css, hidpi=True)

    # 16px is the default background size and is omitted
    assert offsets == "a,0,,b,24,"
    css = out_css.read_text(encoding="utf-8")
    assert ".cke_hidpi .cke_button__b_icon" in css
    assert "background-size: 16px !important;" in css


def test_no_files_writes_nothing(tmp_path):
    assert SpriteComposer().compose([], tmp_path / "icons.png") == ""
    assert not (tmp_path / "icons.png").exists()


def test_layout_rejects_empty_strip():
    with pytest.raises(SpriteDimensionError):
        SpriteComposer().layout([], hidpi=False)


def test_find_icons_prefers_hidpi(tmp_path, png):
    png(tmp_path / "p" / "icons" / "bold.png")
    png(tmp_path / "p" / "icons" / "hidpi" / "bold.png", 32, 32)

    assert find_icons(tmp_path)["bold"].endswith("icons/bold.png")
    assert find_icons(tmp_path, hidpi=True)["bold"].endswith("hidpi/bold.png")


def test_policies_and_theme_overrides(tmp_path, png):
    plugins = tmp_path / "plugins"
    png(plugins / "a" / "icons" / "shared.png")
    png(plugins / "b" / "icons" / "shared.png")
    png(plugins / "c" / "icons" / "other.png")
    theme = tmp_path / "skin"
    png(theme / "icons" / "shared.png")
    png(theme / "icons" / "theme_only.png")

    resolved = ResolvedModulesIconPolicy().select(plugins, ["a", "b"], False)
    assert set(resolved) == {"shared"}
    assert "/a/" in resolved["shared"].replace("\\", "/")

    everything = IncludeAllIconPolicy().select(plugins, [], False)
    assert set(everything) == {"shared", "other"}
    assert "/b/" in everything["shared"].replace("\\", "/")

    merged = apply_theme_overrides(everything, find_icons(theme))
    assert set(merged) == {"shared", "other"}
    assert "/skin/" in merged["shared"].replace("\\", "/")


def test_registration_code():
    assert icons_registration_code("", "") == ""
    code = icons_registration_code("a,0,auto", "a,0,")
    assert "setIcons('a,0,auto','icons.png')" in code
    assert "setIcons('a,0,','icons_hidpi.png')" in code
