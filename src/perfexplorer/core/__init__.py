"""Core utilities."""

from .config import ExplorerConfig, load_config
from .errors import ConfigError, EmptyTraceError, FormatError, PerfExplorerError, TraceError

__all__ = [
    "ExplorerConfig",
    "load_config",
    "PerfExplorerError",
    "ConfigError",
    "TraceError",
    "FormatError",
    "EmptyTraceError",
]
