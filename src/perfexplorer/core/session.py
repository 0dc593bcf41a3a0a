"""Interactive state for one loaded trace."""

from __future__ import annotations

import logging
import threading
from typing import Any, Literal, Optional

from perfexplorer.analysis.runtime.calltree import CallTreeNode, new_root
from perfexplorer.analysis.runtime.hotspot import rank_hotspots
from perfexplorer.analysis.runtime.metrics import trace_metrics
from perfexplorer.analysis.runtime.range_filter import filter_tree
from perfexplorer.views import grid_selection, tree_state
from perfexplorer.views.grid_selection import OVERLAP_EPSILON, GridEvent, GridSelection, TimeRange
from perfexplorer.views.tree_state import TreeAction, TreeView, TreeViewState

from .config import ExplorerConfig
from .errors import TraceError
from .loader import LoadedTrace, LoadResult, TraceLoader, load_trace

logger = logging.getLogger(__name__)

SessionStatus = Literal["empty", "loading", "ready", "error"]


class ExplorerSession:
    """Owns the loaded trace, the tree view state and the grid selection.

    All mutation happens under one lock; views handed out are fresh
    snapshots and never alias the session's own trees.
    """

    def __init__(self, config: Optional[ExplorerConfig] = None):
        self.config = config or ExplorerConfig()
        self.loader = TraceLoader()
        self._lock = threading.RLock()
        self.status: SessionStatus = "empty"
        self.error: Optional[str] = None
        self.trace: Optional[LoadedTrace] = None
        self.tree_state: TreeViewState = tree_state.initial_state()
        self.grid_state: GridSelection = GridSelection()

    # Loading

    def submit(self, text: str, *, source: Optional[str] = None) -> int:
        with self._lock:
            self.status = "loading"
            self.error = None
        return self.loader.submit(text, self.apply_load_result, source=source)

    def load_text(self, text: str, *, source: Optional[str] = None) -> LoadResult:
        """Synchronous load; the outcome is applied exactly like a background one."""
        load_id = self.loader.next_id()
        try:
            trace = load_trace(text, load_id=load_id, source=source)
            result = LoadResult(status="success", load_id=load_id, trace=trace)
        except TraceError as exc:
            result = LoadResult(status="error", load_id=load_id, message=str(exc))
        self.apply_load_result(result)
        return result

    def apply_load_result(self, result: LoadResult) -> None:
        with self._lock:
            if not self.loader.is_current(result.load_id):
                logger.warning("Load result discarded: load_id=%d", result.load_id)
                return
            if result.status == "success" and result.trace is not None:
                self.trace = result.trace
                self.tree_state = tree_state.initial_state(result.trace.call_tree)
                self.grid_state = grid_selection.selection_for_grid(result.trace.grid)
                self.status = "ready"
                self.error = None
                return
            self.error = result.message
            if self.config.session.on_parse_error == "clear" or self.trace is None:
                self.trace = None
                self.tree_state = tree_state.initial_state()
                self.grid_state = GridSelection()
                self.status = "error"
            else:
                # previous view stays on screen, the error is reported alongside it
                self.status = "ready"
            logger.info(
                "Load error applied: load_id=%d policy=%s", result.load_id, self.config.session.on_parse_error
            )

    def require_trace(self) -> LoadedTrace:
        with self._lock:
            if self.trace is None:
                raise LookupError("No trace loaded")
            return self.trace

    # Flame graph

    def dispatch(self, action: TreeAction) -> TreeViewState:
        with self._lock:
            self.tree_state = tree_state.reduce(self.tree_state, action)
            return self.tree_state

    def flamegraph(self, width: Optional[float] = None, height: Optional[float] = None) -> TreeView:
        layout_cfg = self.config.layout
        with self._lock:
            state = self.tree_state
        return tree_state.recompute(
            state,
            width or layout_cfg.width,
            height or layout_cfg.height,
            padding=layout_cfg.padding,
        )

    # Heat map

    @property
    def time_range(self) -> Optional[TimeRange]:
        return self.grid_state.time_range

    def grid_event(self, event: GridEvent) -> GridSelection:
        with self._lock:
            before = self.grid_state.time_range
            self.grid_state = grid_selection.reduce(self.grid_state, event)
            if self.grid_state.time_range != before:
                self._install_filtered_tree(self.grid_state.time_range)
            return self.grid_state

    def select_time_range(self, time_range: Optional[TimeRange]) -> GridSelection:
        with self._lock:
            self.grid_state = grid_selection.reduce(self.grid_state, grid_selection.SetTimeRange(time_range))
            self._install_filtered_tree(time_range)
            return self.grid_state

    def _install_filtered_tree(self, time_range: Optional[TimeRange]) -> None:
        if self.trace is None:
            return
        root = self.trace.call_tree
        tree: CallTreeNode
        if time_range is None:
            tree = root
        else:
            first = self.trace.grid.first_time or 0.0
            # grid cells are [start, end); shift both bounds so a cell keeps exactly the samples it counts
            lo = first + time_range.min - OVERLAP_EPSILON
            hi = first + time_range.max - OVERLAP_EPSILON
            tree = filter_tree(root, lo, hi) or new_root()
        self.tree_state = tree_state.reduce(self.tree_state, tree_state.SetTree(tree))

    # Summaries

    def heatmap(self) -> dict[str, Any]:
        trace = self.require_trace()
        with self._lock:
            grid = self.grid_state
        payload = trace.grid.to_dict()
        payload["selected"] = [
            {"second": c.second, "interval": c.interval} for c in sorted(grid.selected)
        ]
        payload["time_range"] = grid.time_range.to_dict() if grid.time_range else None
        return payload

    def summary(self) -> dict[str, Any]:
        trace = self.require_trace()
        return {
            "source": trace.source,
            "metrics": [m.to_dict() for m in trace_metrics(trace.samples, trace.call_tree)],
            "hotspots": [
                h.to_dict() for h in rank_hotspots(trace.call_tree, top_n=self.config.hotspots.top_n)
            ],
        }
