from .plugin import preprocess_plugin, verify_plugin
from .skin import build_skin, preprocess_skin, verify_skin

__all__ = [
    "build_skin",
    "preprocess_plugin",
    "preprocess_skin",
    "verify_plugin",
    "verify_skin",
]
