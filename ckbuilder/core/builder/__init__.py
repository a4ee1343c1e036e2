from .orchestrator import Builder
from .session import BuildReport, BuildSession

__all__ = ["BuildReport", "BuildSession", "Builder"]
