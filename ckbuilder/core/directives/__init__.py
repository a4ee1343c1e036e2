from .banners import copyright_header, get_copyright_from_text, remove_license_instruction
from .preprocessor import DirectiveDefaults, DirectiveFlags, DirectivePreprocessor

__all__ = [
    "DirectiveDefaults",
    "DirectiveFlags",
    "DirectivePreprocessor",
    "copyright_header",
    "get_copyright_from_text",
    "remove_license_instruction",
]
