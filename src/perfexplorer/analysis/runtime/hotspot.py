"""Hotspot detection + ranking."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List

from .calltree import CallTreeNode, iter_post_order

logger = logging.getLogger(__name__)


@dataclass
class HotspotCandidate:
    symbol: str
    self_samples: int
    total_cpu_cost: int
    score: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "self_samples": self.self_samples,
            "total_cpu_cost": self.total_cpu_cost,
            "score": self.score,
        }


def rank_hotspots(root: CallTreeNode, *, top_n: int = 10) -> List[HotspotCandidate]:
    """Rank frame names by the samples that ended in them, across every call path."""
    self_samples: dict[str, int] = {}
    cpu_costs: dict[str, int] = {}
    for node in iter_post_order(root):
        if not node.own_samples:
            continue
        self_samples[node.name] = self_samples.get(node.name, 0) + node.own_count
        cpu_costs[node.name] = cpu_costs.get(node.name, 0) + sum(s.cpu_cost for s in node.own_samples)

    total = sum(self_samples.values()) or 1
    ordered = sorted(self_samples.items(), key=lambda x: (-x[1], x[0]))[:top_n]
    hotspots = [
        HotspotCandidate(
            symbol=sym,
            self_samples=count,
            total_cpu_cost=cpu_costs[sym],
            score=count / total,
        )
        for sym, count in ordered
    ]
    logger.debug("Hotspots ranked: symbols=%d returned=%d", len(self_samples), len(hotspots))
    return hotspots
