"""Trace parsers."""

from .perf_script_parser import Sample, iter_samples, parse_perf_script

__all__ = [
    "parse_perf_script",
    "iter_samples",
    "Sample",
]
