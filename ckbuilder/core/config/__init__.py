from .loader import create_build_config, is_ignored_path, load_build_config, load_loader_table
from .models import BuildConfig, ExtraScript

__all__ = [
    "BuildConfig",
    "ExtraScript",
    "create_build_config",
    "is_ignored_path",
    "load_build_config",
    "load_loader_table",
]
