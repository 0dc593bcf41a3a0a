"""Unified metric schema + helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from .calltree import CallTreeNode, iter_pre_order
from .traces.perf_script_parser import Sample


@dataclass
class Metric:
    metric_name: str
    value: float
    unit: str = ""
    scope: str = "trace"
    tags: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "metric_name": self.metric_name,
            "value": self.value,
            "unit": self.unit,
            "scope": self.scope,
            "tags": self.tags or {},
        }


def quantile(values: list[float], q: float) -> float:
    if not values:
        return 0.0
    values = sorted(values)
    idx = (len(values) - 1) * q
    lower = int(idx)
    upper = min(lower + 1, len(values) - 1)
    weight = idx - lower
    return values[lower] * (1 - weight) + values[upper] * weight


def trace_metrics(samples: Sequence[Sample], root: CallTreeNode) -> list[Metric]:
    """Headline numbers for one loaded trace."""
    if not samples:
        return [Metric("sample_count", 0.0, unit="samples")]
    times = [s.time for s in samples]
    costs = [float(s.cpu_cost) for s in samples]
    frames = set()
    depth = 0
    for node, parent, d in iter_pre_order(root):
        if parent is not None:
            frames.add(node.name)
        depth = max(depth, d)
    return [
        Metric("sample_count", float(len(samples)), unit="samples"),
        Metric("process_count", float(len({s.process for s in samples}))),
        Metric("duration", max(times) - min(times), unit="s"),
        Metric("frame_count", float(len(frames))),
        Metric("max_stack_depth", float(depth), unit="frames"),
        Metric("cpu_cost_total", sum(costs), unit="events"),
        Metric("cpu_cost_p50", quantile(costs, 0.50), unit="events"),
        Metric("cpu_cost_p95", quantile(costs, 0.95), unit="events"),
    ]
