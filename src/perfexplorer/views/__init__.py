"""Layout and interaction state consumed by the renderer."""

from .partition import Rect, layout, partition
from .tree_state import TreeView, TreeViewState, recompute
from .grid_selection import Cell, GridSelection, TimeRange

__all__ = [
    "Rect",
    "layout",
    "partition",
    "TreeView",
    "TreeViewState",
    "recompute",
    "Cell",
    "GridSelection",
    "TimeRange",
]
