from .composer import SpriteComposer, SpriteEntry, icons_registration_code
from .icons import (
    IconSelectionPolicy,
    IncludeAllIconPolicy,
    ResolvedModulesIconPolicy,
    apply_theme_overrides,
    find_icons,
)

__all__ = [
    "IconSelectionPolicy",
    "IncludeAllIconPolicy",
    "ResolvedModulesIconPolicy",
    "SpriteComposer",
    "SpriteEntry",
    "apply_theme_overrides",
    "find_icons",
    "icons_registration_code",
]
