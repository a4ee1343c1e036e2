from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence, Union

PathLike = Union[str, Path]


class BuildError(Exception):
    """Base error for every failure that aborts an assembly run."""

    def __init__(self, message: str, path: Optional[PathLike] = None):
        super().__init__(message)
        self.message = message
        self.path = str(path) if path is not None else None

    def __str__(self) -> str:
        if self.path and self.path not in self.message:
            return f"{self.message} ({self.path})"
        return self.message

    def to_dict(self) -> dict:
        payload = {"error": type(self).__name__, "detail": self.message}
        if self.path:
            payload["path"] = self.path
        return payload


# ----------------------------------------
# Configuration errors (bad tables, bad source tree)
# ----------------------------------------
class ConfigurationError(BuildError):
    pass


class SourceTreeError(ConfigurationError):
    pass


class MissingDependencyError(ConfigurationError):
    def __init__(self, name: str, message: Optional[str] = None, path: Optional[PathLike] = None):
        super().__init__(message or f"The module name {name!r} is not defined", path=path)
        self.name = name


class CircularDependencyError(ConfigurationError):
    def __init__(self, cycle: Sequence[str]):
        self.cycle = list(cycle)
        super().__init__("Circular dependency detected: " + " -> ".join(self.cycle))


# ----------------------------------------
# Data errors (bad input files)
# ----------------------------------------
class DataError(BuildError):
    pass


class CssImportError(DataError):
    pass


class MalformedImportError(CssImportError):
    pass


class SelfImportError(CssImportError):
    pass


class DuplicateImportError(CssImportError):
    pass


class ImportTargetNotFoundError(CssImportError):
    pass


class SpriteDimensionError(DataError):
    pass


class LanguageFileError(DataError):
    pass
