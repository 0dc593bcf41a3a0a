"""Time-window filtering of a call tree.

Filtering always reads each node's own samples, never its aggregated value,
so filtering an already filtered tree with the same window changes nothing.
"""

from __future__ import annotations

import logging
from typing import Optional

from .calltree import CallTreeNode, OwnSample, iter_post_order

logger = logging.getLogger(__name__)


def _in_window(sample: OwnSample, min_time: float, max_time: float) -> bool:
    return min_time <= sample.time <= max_time


def filter_tree(root: CallTreeNode, min_time: float, max_time: float) -> Optional[CallTreeNode]:
    """Return a fresh tree holding only samples with ``min_time <= time <= max_time``.

    Nodes left without samples and without surviving children are dropped;
    None means nothing in ``root`` falls inside the window.
    """
    if min_time > max_time:
        min_time, max_time = max_time, min_time
    filtered: dict[int, CallTreeNode] = {}
    for node in iter_post_order(root):
        own = [s for s in node.own_samples if _in_window(s, min_time, max_time)]
        kept = [filtered.pop(id(c)) for c in node.children.values() if id(c) in filtered]

        value = len(own) + sum(c.value for c in kept)
        if value == 0 and not kept:
            continue

        out = CallTreeNode(name=node.name, path=node.path, own_samples=own, process=node.process)
        out.value = value
        out.total_cpu_cost = sum(s.cpu_cost for s in own) + sum(c.total_cpu_cost for c in kept)
        out.max_cpu_cost = max([s.cpu_cost for s in own] + [c.max_cpu_cost for c in kept], default=0)
        for s in own:
            out.cover(s.time)
        for c in kept:
            out.children[c.name] = c
            if c.start_time is not None:
                out.cover(c.start_time)
            if c.end_time is not None:
                out.cover(c.end_time)
        filtered[id(node)] = out

    result = filtered.get(id(root))
    logger.info(
        "Call tree filtered: window=[%.6f, %.6f] value=%d",
        min_time,
        max_time,
        result.value if result else 0,
    )
    return result
