"""Sample-density grid (heatmap model): one cell per 100ms slot."""

from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from .traces.perf_script_parser import Sample

logger = logging.getLogger(__name__)

INTERVALS_PER_SECOND = 10


@dataclass(frozen=True)
class Bucket:
    second: int
    interval: int
    count: int


@dataclass
class BucketGrid:
    buckets: List[Bucket] = field(default_factory=list)
    max_time: int = 0
    max_count: int = 0
    first_time: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "buckets": [
                {"second": b.second, "interval": b.interval, "count": b.count} for b in self.buckets
            ],
            "max_time": self.max_time,
            "max_count": self.max_count,
            "first_time": self.first_time,
        }


def bucket_of(relative: float) -> tuple[int, int]:
    second = math.floor(relative)
    interval = math.floor((relative - second) * INTERVALS_PER_SECOND)
    return second, min(interval, INTERVALS_PER_SECOND - 1)


def build_bucket_grid(samples: Sequence[Sample]) -> BucketGrid:
    """Count samples per (second, interval) relative to the earliest sample."""
    if not samples:
        return BucketGrid()

    first_time = min(s.time for s in samples)
    counts: Counter[tuple[int, int]] = Counter()
    latest = 0.0
    for sample in samples:
        relative = sample.time - first_time
        latest = max(latest, relative)
        counts[bucket_of(relative)] += 1

    buckets = [Bucket(second=sec, interval=iv, count=n) for (sec, iv), n in sorted(counts.items())]
    grid = BucketGrid(
        buckets=buckets,
        max_time=math.ceil(latest),
        max_count=max(b.count for b in buckets),
        first_time=first_time,
    )
    logger.info(
        "Bucket grid built: samples=%d buckets=%d max_time=%d max_count=%d",
        len(samples),
        len(buckets),
        grid.max_time,
        grid.max_count,
    )
    return grid
