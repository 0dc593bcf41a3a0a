"""Runtime analysis helpers."""

from .traces import Sample, parse_perf_script
from .calltree import CallTreeNode, OwnSample, build_call_tree, copy_tree, node_to_dict
from .range_filter import filter_tree
from .buckets import Bucket, BucketGrid, build_bucket_grid
from .metrics import Metric, trace_metrics
from .hotspot import HotspotCandidate, rank_hotspots

__all__ = [
    "Sample",
    "parse_perf_script",
    "CallTreeNode",
    "OwnSample",
    "build_call_tree",
    "copy_tree",
    "node_to_dict",
    "filter_tree",
    "Bucket",
    "BucketGrid",
    "build_bucket_grid",
    "Metric",
    "trace_metrics",
    "HotspotCandidate",
    "rank_hotspots",
]
