from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Sequence

from ckbuilder.core.errors import CircularDependencyError, MissingDependencyError

log = logging.getLogger("ckbuilder.resolver")

# Implicitly satisfied prerequisite of every core script; never emitted.
TERMINAL_LEAF = "ckeditor_base"

DependencyTable = Mapping[str, Sequence[str]]

_IN_PROGRESS = 1
_DONE = 2


class DependencyResolver:
    """
    Depth-first resolution of module prerequisites.

    Each name appears once in the result, after all of its prerequisites.
    A prerequisite that is still being resolved when it is reached again
    is a cycle and aborts resolution.
    """

    def __init__(self, table: DependencyTable, leaf: str = TERMINAL_LEAF):
        self.table = table
        self.leaf = leaf

    def resolve(self, requested: Iterable[str]) -> List[str]:
        names = list(requested)
        if not names:
            raise MissingDependencyError("", "Nothing was requested for resolution")

        state: Dict[str, int] = {}
        order: List[str] = []
        for name in names:
            self._visit(name, state, order, [])
        return order

    def _visit(self, name: str, state: Dict[str, int], order: List[str], path: List[str]) -> None:
        if name == self.leaf:
            return

        mark = state.get(name)
        if mark == _DONE:
            return
        if mark == _IN_PROGRESS:
            cycle = path[path.index(name):] + [name]
            raise CircularDependencyError(cycle)

        try:
            prerequisites = self.table[name]
        except KeyError:
            raise MissingDependencyError(name) from None

        state[name] = _IN_PROGRESS
        path.append(name)
        for dep in prerequisites:
            self._visit(dep, state, order, path)
        path.pop()
        state[name] = _DONE

        log.debug("Resolved module: %s", name)
        order.append(name)


def resolve(requested: Iterable[str], table: DependencyTable) -> List[str]:
    return DependencyResolver(table).resolve(requested)
