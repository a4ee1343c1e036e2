from __future__ import annotations

import logging
import math
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

from PIL import Image

from ckbuilder.core.errors import BuildError, SpriteDimensionError
from ckbuilder.core.io.files import read_file, save_file
from ckbuilder.core.observability.metrics import inc_icons_rejected
from ckbuilder.core.sprite.icons import (
    IconSelectionPolicy,
    apply_theme_overrides,
    find_icons,
    policy_for,
)

log = logging.getLogger("ckbuilder.sprite")

PathLike = Union[str, Path]

MAX_ICON_SIZE = 100
STANDARD_GAP = 8
HIDPI_GAP = 16
DEFAULT_BACKGROUND_SIZE = "16px"
HIDPI_PREFIX = ".cke_hidpi"

_BUTTON_NAME = re.compile(r".*?(?=\.|-rtl)")


def _js_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def _js_round(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass
class SpriteEntry:
    name: str
    offset: str
    background_size: str


@dataclass
class _Icon:
    path: str
    file_name: str
    image: Image.Image
    is_hidpi: bool

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height


class SpriteComposer:
    """Packs icon images into one vertical strip and emits the matching CSS rules."""

    def __init__(self, timestamp: str = "", leave_css_unminified: bool = False):
        self.timestamp = timestamp
        self.leave_css_unminified = leave_css_unminified

    @classmethod
    def from_options(cls, options) -> "SpriteComposer":
        return cls(timestamp=options.timestamp, leave_css_unminified=options.leave_css_unminified)

    # ----------------------------------------
    # Loading
    # ----------------------------------------
    def _load(self, files: Sequence[PathLike]) -> List[_Icon]:
        icons: List[_Icon] = []
        for f in files:
            path = os.path.abspath(str(f))
            try:
                with Image.open(path) as src:
                    image = src.convert("RGBA")
            except OSError as e:
                raise BuildError("Unable to read image", path=path) from e

            if image.width > MAX_ICON_SIZE or image.height > MAX_ICON_SIZE:
                log.warning("Cowardly refused to add an image to a sprite because it's too big: %s", path)
                inc_icons_rejected()
                continue

            icons.append(
                _Icon(
                    path=path,
                    file_name=os.path.basename(path),
                    image=image,
                    is_hidpi="/icons/hidpi/" in path.replace("\\", "/"),
                )
            )
        return icons

    # ----------------------------------------
    # Layout + CSS
    # ----------------------------------------
    def layout(self, icons: Sequence[_Icon], hidpi: bool):
        """Returns (entries, css_rules, max_width, max_height, total_height)."""
        max_width = max((i.width for i in icons), default=0)
        max_height = max((i.height for i in icons), default=0)
        if max_width <= 0:
            raise SpriteDimensionError(f"Error while generating sprite image: invalid width ({max_width})")

        gap = HIDPI_GAP if hidpi else STANDARD_GAP
        prefix = HIDPI_PREFIX if hidpi else ""
        strip = ("icons_hidpi.png" if hidpi else "icons.png") + "?t=" + self.timestamp

        entries: List[SpriteEntry] = []
        rules: List[str] = []
        has_rtl = set()
        total_height = 0

        for icon in icons:
            m = _BUTTON_NAME.match(icon.file_name)
            button = m.group(0) if m else icon.file_name
            selector = ".cke_button__" + button + "_icon"

            if hidpi and icon.is_hidpi:
                bg_size = f"{_js_round(max_width / 2)}px"
                css_bg_size = "background-size: " + bg_size + " !important;"
                if bg_size == DEFAULT_BACKGROUND_SIZE:
                    bg_size = ""
                ypos = _js_number(total_height / 2)
            else:
                # Strips may be wider than 16px (third party icons), so never rely on the default.
                bg_size = "auto"
                css_bg_size = ""
                ypos = _js_number(total_height)

            background = " {background: url(" + strip + ") no-repeat 0 -" + ypos + "px !important;" + css_bg_size + "}"

            if "-rtl" in icon.file_name:
                has_rtl.add(button)
                rules.append(
                    ".cke_rtl" + prefix + " " + selector + ","
                    + (" " if prefix else "") + prefix + " .cke_mixed_dir_content .cke_rtl " + selector
                    + background
                )
                entries.append(SpriteEntry(button + "-rtl", ypos, bg_size))
            else:
                env = (".cke_ltr" if button in has_rtl else "") + prefix
                if env:
                    env += " "
                if hidpi and button in has_rtl:
                    rules.append(".cke_hidpi .cke_ltr " + selector + ",")
                rules.append(env + selector + background)
                entries.append(SpriteEntry(button, ypos, bg_size))

            total_height += max_height + gap

        if total_height <= 0:
            raise SpriteDimensionError(f"Error while generating sprite image: invalid height ({total_height})")

        return entries, rules, max_width, max_height, total_height

    def compose(
        self,
        files: Sequence[PathLike],
        output_image: PathLike,
        output_css: Optional[PathLike] = None,
        hidpi: bool = False,
    ) -> str:
        """
        Write the strip image (and CSS rules when `output_css` is given).

        Returns the registration string `name,offset,size,...`, or "" when
        there are no files (nothing is written then).
        """
        if not files:
            log.debug("No images given, sprite file will not be created.")
            return ""

        rules: List[str] = []
        if output_css and os.path.exists(output_css):
            rules.append(read_file(output_css))

        icons = self._load(files)
        entries, icon_rules, width, max_height, total_height = self.layout(icons, hidpi)
        rules.extend(icon_rules)

        log.debug("Sprites generator: %s images. Total height: %spx, width: %spx",
                  len(icons), total_height, width)

        gap = HIDPI_GAP if hidpi else STANDARD_GAP
        canvas = Image.new("RGBA", (width, total_height), (0, 0, 0, 0))
        y = 0
        for icon in icons:
            canvas.alpha_composite(icon.image, dest=(0, y))
            y += max_height + gap

        log.debug("Saving sprite: %s", output_image)
        canvas.save(str(output_image), format="PNG")

        if output_css:
            log.debug("Saving CSS rules to %s", output_css)
            save_file(output_css, ("\r\n" if self.leave_css_unminified else "").join(rules))

        return ",".join(f"{e.name},{e.offset},{e.background_size}" for e in entries)

    def create_full_sprite(
        self,
        plugins_dir: PathLike,
        theme_dir: Optional[PathLike],
        output_image: PathLike,
        output_css: Optional[PathLike],
        plugin_names: Sequence[str],
        hidpi: bool = False,
        policy: Optional[IconSelectionPolicy] = None,
        include_all: bool = True,
    ) -> str:
        policy = policy or policy_for(include_all)
        selected = policy.select(Path(plugins_dir), plugin_names, hidpi)
        theme_icons = find_icons(theme_dir, hidpi)
        icons = apply_theme_overrides(selected, theme_icons)

        log.debug("Sprite policy=%s plugins=%s selected=%d theme=%d",
                  policy.name, ",".join(plugin_names), len(selected), len(theme_icons))

        files = sorted(icons[name] for name in selected)
        return self.compose(files, output_image, output_css, hidpi)


def icons_registration_code(offsets: str, hidpi_offsets: str) -> str:
    """Runtime snippet registering strip offsets with the editor skin."""
    if not offsets:
        return ""
    return (
        "(function() {"
        "var setIcons = function(icons, strip) {"
        "var path = CKEDITOR.getUrl( 'plugins/' + strip );"
        "icons = icons.split( ',' );"
        "for ( var i = 0; i < icons.length; i++ )"
        "CKEDITOR.skin.icons[ icons[ i ] ] = { path: path, offset: -icons[ ++i ], bgsize : icons[ ++i ] };"
        "};"
        "if (CKEDITOR.env.hidpi) "
        "setIcons('" + hidpi_offsets + "','icons_hidpi.png');"
        "else "
        "setIcons('" + offsets + "','icons.png');"
        "})();"
    )
