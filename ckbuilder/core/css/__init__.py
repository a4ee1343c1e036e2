from .comments import remove_comments
from .inliner import CssImportInliner, ImportSession, merge_css_files

__all__ = ["CssImportInliner", "ImportSession", "merge_css_files", "remove_comments"]
