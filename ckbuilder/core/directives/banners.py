from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from ckbuilder.core.io.files import BOM_EXTENSIONS, TEXT_EXTENSIONS, get_extension, read_file, save_file

_COPYRIGHT_COMMENT = re.compile(r"/\*[\s*]*Copyright[\s\S]+?\*/(?:\r\n|\r|\n)", re.IGNORECASE)
_LICENSE_COMMENT = re.compile(r"/\*[\s*]*@license[\s\S]+?\*/(?:\r\n|\r|\n)")
_LICENSE_INSTRUCTION = re.compile(r"@license( )?")

OPEN_SOURCE_NOTICE = "For licensing, see LICENSE.md or http://ckeditor.com/license"
COMMERCIAL_NOTICE = (
    "This software is covered by CKEditor Commercial License. Usage without proper license is prohibited."
)
_NOTICE_VARIANTS = (
    OPEN_SOURCE_NOTICE,
    "For licensing, see LICENSE.md or [http://ckeditor.com/license](http://ckeditor.com/license)",
)


def get_copyright_from_text(text: str) -> str:
    """First copyright (or @license) block comment, including its line break."""
    m = _COPYRIGHT_COMMENT.search(text) or _LICENSE_COMMENT.search(text)
    return m.group(0) if m else ""


def remove_license_instruction(text: str) -> str:
    return _LICENSE_INSTRUCTION.sub("", text)


def copyright_header(eol: str = "\n", commercial: bool = False, year: Optional[int] = None) -> str:
    year = year or datetime.now(timezone.utc).year
    owner = f"Copyright (c) 2003-{year}, CKSource - Frederico Knabben. All rights reserved."
    if commercial:
        body = [COMMERCIAL_NOTICE, owner]
    else:
        body = [owner, OPEN_SOURCE_NOTICE]
    return "/*" + eol + eol.join(body) + eol + "*/" + eol


def update_copyrights(path: Union[str, Path]) -> bool:
    """Swap the open source notice for the commercial one; returns True if the file changed."""
    ext = get_extension(path)
    if ext not in TEXT_EXTENSIONS:
        return False
    text = read_file(path)
    if "Copyright" not in text or "CKSource" not in text:
        return False
    for notice in _NOTICE_VARIANTS:
        if notice in text:
            save_file(path, text.replace(notice, COMMERCIAL_NOTICE, 1), include_bom=ext in BOM_EXTENSIONS)
            return True
    return False
