from .files import LANGUAGE_CODE, language_files, load_language_file
from .merger import TranslationMerger, plugin_lang_script, to_pseudo_object

__all__ = [
    "LANGUAGE_CODE",
    "TranslationMerger",
    "language_files",
    "load_language_file",
    "plugin_lang_script",
    "to_pseudo_object",
]
