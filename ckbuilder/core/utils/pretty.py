from __future__ import annotations

import re
from typing import Any, Mapping

_PLAIN_PROPERTY = re.compile(r"^[a-z][a-z0-9_]+$", re.IGNORECASE)


def escape_string(value: str) -> str:
    return (
        value.replace("\\", "\\\\")
        .replace("\r", "\\r")
        .replace("\n", "\\n")
        .replace("'", "\\'")
        .replace("\u200b", "\\u200b")
    )


def escape_property(name: str) -> str:
    if _PLAIN_PROPERTY.match(name):
        return name
    return "'" + escape_string(name) + "'"


def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def pretty_print_object(obj: Mapping[str, Any], indent: str = "") -> str:
    """Render a mapping as JavaScript object members, one per line."""
    lines = []
    for key, value in obj.items():
        if isinstance(value, str):
            rendered = "'" + escape_string(value) + "'"
        elif isinstance(value, Mapping):
            inner = pretty_print_object(value, indent + "\t")
            rendered = "\n" + indent + "{\n" + inner + "\n" + indent + "}"
        elif isinstance(value, (list, tuple)):
            rendered = "[ " + ",".join(_scalar(v) for v in value) + " ]"
        else:
            rendered = _scalar(value)
        lines.append(indent + escape_property(str(key)) + " : " + rendered)
    return ",\n".join(lines)
