from .graph import TERMINAL_LEAF, DependencyResolver, resolve
from .tables import PluginDependencyTable

__all__ = [
    "TERMINAL_LEAF",
    "DependencyResolver",
    "PluginDependencyTable",
    "resolve",
]
