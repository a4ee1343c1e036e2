from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Sequence

from ckbuilder.core.errors import MissingDependencyError
from ckbuilder.core.io.files import read_file
from ckbuilder.core.resolver.declarations import extract_requires

log = logging.getLogger("ckbuilder.resolver")


class PluginDependencyTable(Mapping[str, Sequence[str]]):
    """
    Lazy dependency table over a `plugins/` directory.

    Looking up a name reads `plugins/<name>/plugin.js` and returns its
    `requires` list. Results are cached for the lifetime of the table.
    """

    def __init__(self, plugins_dir: Path):
        self.plugins_dir = Path(plugins_dir)
        self._cache: Dict[str, List[str]] = {}

    def plugin_file(self, name: str) -> Path:
        return self.plugins_dir / name / "plugin.js"

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.plugin_file(name).is_file()

    def __getitem__(self, name: str) -> List[str]:
        if name in self._cache:
            return self._cache[name]
        path = self.plugin_file(name)
        if not path.is_file():
            raise MissingDependencyError(name, f"Plugin does not exist: {name}", path=path)
        log.debug("Getting required plugins from %s", path)
        requires = extract_requires(read_file(path), source=str(path))
        self._cache[name] = requires
        return requires

    def __iter__(self) -> Iterator[str]:
        if not self.plugins_dir.is_dir():
            return iter(())
        return iter(sorted(p.name for p in self.plugins_dir.iterdir() if (p / "plugin.js").is_file()))

    def __len__(self) -> int:
        return sum(1 for _ in self)
