"""Custom exception hierarchy."""


class PerfExplorerError(Exception):
    """Base error."""


class ConfigError(PerfExplorerError):
    """Invalid configuration."""


class TraceError(PerfExplorerError):
    """Raised when a trace cannot be turned into samples."""


class FormatError(TraceError):
    """No sample header line was recognised; the input is not a perf script trace."""


class EmptyTraceError(TraceError):
    """Sample headers were found but no usable sample came out of them."""
