"""Icicle partition layout for a call tree.

Horizontal extent is proportional to ``value`` within the parent, one depth
band per level.  Coordinates follow the d3 partition convention: the root
starts at ``padding`` and every node gives up ``padding`` on its right and
bottom edge, which leaves a gap between siblings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from perfexplorer.analysis.runtime.calltree import CallTreeNode, find_node, iter_pre_order, sorted_children

logger = logging.getLogger(__name__)


@dataclass
class Rect:
    x0: float
    x1: float
    y0: float
    y1: float
    depth: int

    @property
    def width(self) -> float:
        return self.x1 - self.x0

    @property
    def height(self) -> float:
        return self.y1 - self.y0

    def to_dict(self) -> dict[str, float]:
        return {"x0": self.x0, "x1": self.x1, "y0": self.y0, "y1": self.y1, "depth": self.depth}


def partition(root: CallTreeNode, width: float, height: float, padding: float = 1.0) -> Dict[str, Rect]:
    """Raw partition extents for every node, keyed by path."""
    levels = max(d for _, _, d in iter_pre_order(root)) + 1
    band = height / levels

    rects: Dict[str, Rect] = {root.path: Rect(padding, width, padding, band, 0)}
    stack = [root]
    while stack:
        node = stack.pop()
        rect = rects[node.path]
        if node.children:
            children = sorted_children(node)
            y0 = height * (rect.depth + 1) / levels
            y1 = height * (rect.depth + 2) / levels
            k = (rect.x1 - rect.x0) / node.value if node.value else 0.0
            x = rect.x0
            for child in children:
                x_next = x + child.value * k
                rects[child.path] = Rect(x, x_next, y0, y1, rect.depth + 1)
                x = x_next
            stack.extend(reversed(children))
        # pad after the children were diced over the unpadded extent
        x0, x1 = rect.x0, rect.x1 - padding
        y0, y1 = rect.y0, rect.y1 - padding
        if x1 < x0:
            x0 = x1 = (x0 + x1) / 2
        if y1 < y0:
            y0 = y1 = (y0 + y1) / 2
        rect.x0, rect.x1, rect.y0, rect.y1 = x0, x1, y0, y1
    return rects


def layout(
    root: CallTreeNode,
    width: float,
    height: float,
    *,
    zoom_path: Optional[str] = None,
    padding: float = 1.0,
    include: Optional[Callable[[CallTreeNode], bool]] = None,
) -> Dict[str, Rect]:
    """Emitted rectangles, rebased onto the zoom target when one is set.

    ``include`` lets the caller hide further nodes (pruned, collapsed away).
    A zoom path that is not in the tree falls back to the root.
    """
    raw = partition(root, width, height, padding)
    target = find_node(root, zoom_path) if zoom_path else None
    if target is None:
        target = root
    z = raw[target.path]

    emitted: list[tuple[str, Rect]] = []
    for node, _, depth in iter_pre_order(root):
        if node.value <= 0 or depth < z.depth:
            continue
        if include is not None and not include(node):
            continue
        r = raw[node.path]
        # cull against the target's original extent, before rescaling
        if not (r.x1 > z.x0 and r.x0 < z.x1):
            continue
        emitted.append((node.path, r))

    if not emitted:
        return {}

    max_y1 = max(r.y1 for _, r in emitted)
    x_span = (z.x1 - z.x0) or 1.0
    y_span = (max_y1 - z.y0) or 1.0

    def sx(x: float) -> float:
        return (x - z.x0) / x_span * width

    def sy(y: float) -> float:
        return (y - z.y0) / y_span * height

    out = {
        path: Rect(sx(r.x0), sx(r.x1), sy(r.y0), sy(r.y1), r.depth - z.depth)
        for path, r in emitted
    }
    logger.debug("Layout computed: nodes=%d zoom=%s", len(out), target.path)
    return out
