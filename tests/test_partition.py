from __future__ import annotations

import pytest

from perfexplorer.views.partition import Rect, layout, partition


class TestPartition:
    def test_unpadded_extents(self, scenario_tree):
        rects = partition(scenario_tree, 300, 300, padding=0)
        assert rects["root"] == Rect(0, 300, 0, 100, 0)
        assert rects["root/a"] == Rect(0, 300, 100, 200, 1)
        assert rects["root/a/b"] == Rect(0, 200, 200, 300, 2)
        assert rects["root/a/c"] == Rect(200, 300, 200, 300, 2)

    def test_padding_separates_siblings(self, scenario_tree):
        rects = partition(scenario_tree, 300, 300, padding=1)
        b, c = rects["root/a/b"], rects["root/a/c"]
        assert c.x0 - b.x1 == pytest.approx(1.0)
        assert rects["root"].x0 == 1
        assert rects["root/a"].y1 == pytest.approx(199.0)

    def test_zero_value_node_gets_zero_width(self, scenario_tree):
        scenario_tree.children["a"].children["c"].value = 0
        scenario_tree.children["a"].value = 2
        scenario_tree.value = 2
        rects = partition(scenario_tree, 300, 300, padding=0)
        assert rects["root/a/c"].width == 0


class TestLayout:
    def test_full_view(self, scenario_tree):
        rects = layout(scenario_tree, 300, 300, padding=0)
        assert set(rects) == {"root", "root/a", "root/a/b", "root/a/c"}
        assert rects["root/a/b"] == Rect(0, 200, 200, 300, 2)

    def test_zoom_rebases_target(self, scenario_tree):
        rects = layout(scenario_tree, 300, 300, zoom_path="root/a/c", padding=0)
        assert rects == {"root/a/c": Rect(0, 300, 0, 300, 0)}

    def test_zoom_on_inner_node(self, scenario_tree):
        rects = layout(scenario_tree, 300, 300, zoom_path="root/a", padding=0)
        assert set(rects) == {"root/a", "root/a/b", "root/a/c"}
        assert rects["root/a"] == Rect(0, 300, 0, 150, 0)
        assert rects["root/a/b"] == Rect(0, 200, 150, 300, 1)

    def test_unknown_zoom_path_falls_back_to_root(self, scenario_tree):
        assert layout(scenario_tree, 300, 300, zoom_path="root/nope", padding=0) == layout(
            scenario_tree, 300, 300, padding=0
        )

    def test_include_hides_nodes_and_rescales_height(self, scenario_tree):
        rects = layout(scenario_tree, 300, 300, padding=0, include=lambda n: n.name not in ("b", "c"))
        assert set(rects) == {"root", "root/a"}
        assert rects["root/a"].y1 == 300

    def test_zero_value_nodes_are_not_emitted(self, scenario_tree):
        scenario_tree.children["a"].children["c"].value = 0
        rects = layout(scenario_tree, 300, 300, padding=0)
        assert "root/a/c" not in rects

    def test_empty_tree(self):
        from perfexplorer.analysis.runtime.calltree import new_root

        assert layout(new_root(), 100, 100) == {}
