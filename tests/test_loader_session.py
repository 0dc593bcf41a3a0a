from __future__ import annotations

import pytest

from perfexplorer.core.config import load_config
from perfexplorer.core.errors import FormatError
from perfexplorer.core.loader import LoadResult, TraceLoader, load_trace
from perfexplorer.core.session import ExplorerSession
from perfexplorer.views.grid_selection import Cell, PointerDown, PointerUp, TimeRange
from perfexplorer.views.tree_state import Collapse, Prune

from .conftest import make_trace


def _session(policy: str = "clear") -> ExplorerSession:
    return ExplorerSession(load_config(overrides={"session": {"on_parse_error": policy}}))


class TestLoader:
    def test_load_trace_builds_both_models(self, scenario_text):
        trace = load_trace(scenario_text, load_id=7, source="scenario.perf")
        assert len(trace.samples) == 3
        assert trace.call_tree.value == 3
        assert trace.grid.max_count == 2
        assert trace.load_id == 7

    def test_load_trace_propagates_format_errors(self):
        with pytest.raises(FormatError):
            load_trace("nothing to see here")

    def test_background_submit_delivers_result(self, scenario_text):
        loader = TraceLoader()
        results: list[LoadResult] = []
        load_id = loader.submit(scenario_text, results.append)
        loader.wait(timeout=10)
        assert [r.load_id for r in results] == [load_id]
        assert results[0].status == "success"

    def test_background_error_becomes_result(self):
        loader = TraceLoader()
        results: list[LoadResult] = []
        loader.submit("garbage", results.append)
        loader.wait(timeout=10)
        assert results[0].status == "error"
        assert "Invalid file format" in results[0].message

    def test_ids_increase(self):
        loader = TraceLoader()
        first = loader.next_id()
        second = loader.next_id()
        assert second > first
        assert loader.is_current(second)
        assert not loader.is_current(first)


class TestSessionLoading:
    def test_starts_empty(self):
        session = _session()
        assert session.status == "empty"
        with pytest.raises(LookupError):
            session.require_trace()

    def test_sync_load(self, scenario_text):
        session = _session()
        result = session.load_text(scenario_text, source="scenario.perf")
        assert result.status == "success"
        assert session.status == "ready"
        assert session.require_trace().source == "scenario.perf"
        assert session.grid_state.cells == {Cell(0, 0), Cell(0, 1)}

    def test_background_load(self, scenario_text):
        session = _session()
        session.submit(scenario_text)
        session.loader.wait(timeout=10)
        assert session.status == "ready"
        assert session.trace.call_tree.value == 3

    def test_newest_submission_wins(self, scenario_text, wide_text):
        session = _session()
        session.submit(wide_text)
        latest = session.submit(scenario_text)
        session.loader.wait(timeout=10)
        assert session.trace.load_id == latest
        assert len(session.trace.samples) == 3

    def test_stale_result_is_discarded(self, scenario_text):
        session = _session()
        session.load_text(scenario_text)
        stale = session.trace.load_id
        session.loader.next_id()
        session.apply_load_result(LoadResult(status="error", load_id=stale, message="late"))
        assert session.status == "ready"
        assert session.error is None

    def test_new_load_resets_interaction_state(self, scenario_text, wide_text):
        session = _session()
        session.load_text(scenario_text)
        session.dispatch(Collapse("a"))
        session.select_time_range(TimeRange(0.0, 0.1))
        session.load_text(wide_text)
        assert session.tree_state.collapsed_by_name == frozenset()
        assert session.time_range is None
        assert session.tree_state.generation == 0

    def test_error_clears_view(self, scenario_text):
        session = _session("clear")
        session.load_text(scenario_text)
        result = session.load_text("garbage")
        assert result.status == "error"
        assert session.status == "error"
        assert session.trace is None
        assert session.error

    def test_error_keeps_previous_view(self, scenario_text):
        session = _session("keep")
        session.load_text(scenario_text)
        session.load_text("garbage")
        assert session.status == "ready"
        assert session.trace is not None
        assert "Invalid file format" in session.error

    def test_keep_policy_without_previous_trace(self):
        session = _session("keep")
        session.load_text("garbage")
        assert session.status == "error"
        assert session.trace is None


class TestSessionInteraction:
    def test_time_range_filters_flamegraph(self, scenario_text):
        session = _session()
        session.load_text(scenario_text)
        session.select_time_range(TimeRange(0.0, 0.1))
        view = session.flamegraph(300, 300)
        assert view.visible == {"root", "root/a", "root/a/b"}
        assert view.root.value == 2

    def test_clearing_range_restores_tree(self, scenario_text):
        session = _session()
        session.load_text(scenario_text)
        session.select_time_range(TimeRange(0.0, 0.1))
        session.select_time_range(None)
        assert session.flamegraph(300, 300).root.value == 3

    def test_grid_gesture_filters_tree(self, scenario_text):
        session = _session()
        session.load_text(scenario_text)
        session.grid_event(PointerDown(Cell(0, 1)))
        assert session.tree_state.tree.value == 3
        session.grid_event(PointerUp())
        view = session.flamegraph(300, 300)
        assert view.visible == {"root", "root/a", "root/a/c"}

    def test_empty_window_gives_empty_tree(self, scenario_text):
        session = _session()
        session.load_text(scenario_text)
        session.select_time_range(TimeRange(5.0, 6.0))
        view = session.flamegraph(300, 300)
        assert view.root.value == 0
        assert view.rects == {}

    def test_prune_survives_time_range_change(self, scenario_text):
        session = _session()
        session.load_text(scenario_text)
        session.dispatch(Prune("root/a/b"))
        session.select_time_range(TimeRange(0.0, 0.1))
        assert session.flamegraph(300, 300).root.value == 0
        session.select_time_range(None)
        assert session.flamegraph(300, 300).root.value == 1

    def test_heatmap_and_summary(self, scenario_text):
        session = _session()
        session.load_text(scenario_text)
        session.select_time_range(TimeRange(0.0, 0.1))
        heatmap = session.heatmap()
        assert heatmap["selected"] == [{"second": 0, "interval": 0}]
        assert heatmap["time_range"] == {"min": 0.0, "max": 0.1}
        summary = session.summary()
        assert summary["hotspots"][0]["symbol"] == "b"

    @pytest.mark.parametrize("base", [0.0, 1.0])
    def test_single_cell_keeps_exactly_its_samples(self, base):
        offsets = [0.0, 0.3, 0.6, 0.7, 1.7]
        text = make_trace(
            *[("app", 10 * (i + 1), 0, base + off, ["main", f"f{i}"]) for i, off in enumerate(offsets)]
        )
        session = _session()
        session.load_text(text)
        buckets = session.trace.grid.buckets
        assert len(buckets) == len(offsets)
        for bucket in buckets:
            cell = Cell(bucket.second, bucket.interval)
            session.grid_event(PointerDown(cell))
            session.grid_event(PointerUp())
            assert session.flamegraph(300, 300).root.value == bucket.count, cell
