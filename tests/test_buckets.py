from __future__ import annotations

from perfexplorer.analysis.runtime.buckets import Bucket, bucket_of, build_bucket_grid
from perfexplorer.analysis.runtime.traces.perf_script_parser import Sample, parse_perf_script


def _sample(time):
    return Sample(stack=("a",), time=time, process="app", cpu_cost=0)


class TestBuildBucketGrid:
    def test_scenario(self, scenario_samples):
        grid = build_bucket_grid(scenario_samples)
        assert grid.buckets == [Bucket(0, 0, 2), Bucket(0, 1, 1)]
        assert grid.max_count == 2
        assert grid.max_time == 1
        assert grid.first_time == 0.0

    def test_times_are_relative_to_first_sample(self):
        grid = build_bucket_grid([_sample(100.0), _sample(102.5)])
        assert grid.first_time == 100.0
        assert grid.buckets == [Bucket(0, 0, 1), Bucket(2, 5, 1)]
        assert grid.max_time == 3

    def test_sparse_but_max_time_spans_gaps(self):
        grid = build_bucket_grid([_sample(0.0), _sample(7.25)])
        assert len(grid.buckets) == 2
        assert grid.max_time == 8

    def test_counts_are_conserved(self, wide_text):
        samples = parse_perf_script(wide_text)
        grid = build_bucket_grid(samples)
        assert sum(b.count for b in grid.buckets) == len(samples)
        assert grid.max_count == max(b.count for b in grid.buckets)

    def test_empty(self):
        grid = build_bucket_grid([])
        assert grid.buckets == []
        assert grid.max_count == 0
        assert grid.first_time is None

    def test_single_sample(self):
        grid = build_bucket_grid([_sample(5.0)])
        assert grid.buckets == [Bucket(0, 0, 1)]
        assert grid.max_time == 0

    def test_bucket_of(self):
        assert bucket_of(0.0) == (0, 0)
        assert bucket_of(0.25) == (0, 2)
        assert bucket_of(3.99) == (3, 9)

    def test_to_dict(self, scenario_samples):
        payload = build_bucket_grid(scenario_samples).to_dict()
        assert payload["buckets"][0] == {"second": 0, "interval": 0, "count": 2}
        assert payload["max_time"] == 1
