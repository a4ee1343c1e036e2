from __future__ import annotations

from typing import Any, Dict, Mapping, Optional


def deep_merge(
    base: Optional[Mapping[str, Any]],
    override: Optional[Mapping[str, Any]],
    full_merge: bool = True,
) -> Dict[str, Any]:
    """
    Recursively merge two mappings into a new dict.

    - keys from `override` come first, in `override` order, then keys only in `base`
    - nested mappings are merged; any other value from `override` replaces the base value
    - with full_merge=False, keys of `override` missing from `base` are skipped
    """
    base = base or {}
    override = override or {}
    result: Dict[str, Any] = {}

    for key, value in override.items():
        if not full_merge and key not in base:
            continue
        if isinstance(value, Mapping):
            base_value = base.get(key)
            if isinstance(base_value, Mapping):
                result[key] = deep_merge(base_value, value, full_merge)
            elif full_merge:
                result[key] = deep_merge(None, value, full_merge)
            else:
                result[key] = value
        else:
            result[key] = value

    for key, value in base.items():
        if key in override:
            continue
        result[key] = value

    return result
