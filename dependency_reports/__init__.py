"""
Dependency Reports

Incremental loading of compiler-emitted dependency reports for build targets.
"""

__version__ = "0.1.0"

from .cli import main
from .loader import DependencyReportLoader, LoaderConfig
from .lookup import DependencyLookup
from .models import LoadResult, LoadStatus, TargetInfo, TargetKey
from .state import DependencyState, JsonStateStore

__all__ = [
    "DependencyLookup",
    "DependencyReportLoader",
    "DependencyState",
    "JsonStateStore",
    "LoadResult",
    "LoadStatus",
    "LoaderConfig",
    "TargetInfo",
    "TargetKey",
    "main",
]
