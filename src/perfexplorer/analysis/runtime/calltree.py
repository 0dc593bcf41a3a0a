"""Call tree (flame graph model) built from parsed samples.

Every walk here is iterative: perf traces can encode stacks thousands of
frames deep, well past Python's recursion limit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence

from .traces.perf_script_parser import Sample

logger = logging.getLogger(__name__)

ROOT_NAME = "root"
PATH_SEP = "/"
UNKNOWN_FRAME = "[unknown]"

_DESCEND = 0
_PROCESS = 1


@dataclass(frozen=True)
class OwnSample:
    time: float
    cpu_cost: int


@dataclass
class CallTreeNode:
    name: str
    path: str
    value: int = 0
    children: Dict[str, "CallTreeNode"] = field(default_factory=dict)
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    total_cpu_cost: int = 0
    max_cpu_cost: int = 0
    own_samples: List[OwnSample] = field(default_factory=list)
    process: Optional[str] = None

    @property
    def own_count(self) -> int:
        return len(self.own_samples)

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def child_path(self, name: str) -> str:
        return f"{self.path}{PATH_SEP}{name}"

    def cover(self, ts: float) -> None:
        if self.start_time is None or ts < self.start_time:
            self.start_time = ts
        if self.end_time is None or ts > self.end_time:
            self.end_time = ts


def new_root() -> CallTreeNode:
    return CallTreeNode(name=ROOT_NAME, path=ROOT_NAME)


def collapse_unknown_runs(stack: Sequence[str], process: str) -> List[str]:
    """Fold consecutive ``[unknown]`` frames into one labelled frame."""
    frames: List[str] = []
    i = 0
    while i < len(stack):
        frame = stack[i]
        if frame != UNKNOWN_FRAME:
            frames.append(frame)
            i += 1
            continue
        run = 1
        while i + run < len(stack) and stack[i + run] == UNKNOWN_FRAME:
            run += 1
        if run > 1:
            frames.append(f"{run} x {UNKNOWN_FRAME} ({process})")
        else:
            frames.append(f"{UNKNOWN_FRAME} ({process})")
        i += run
    return frames


def iter_post_order(root: CallTreeNode) -> Iterator[CallTreeNode]:
    """Yield every node after all of its descendants."""
    stack: list[tuple[CallTreeNode, int]] = [(root, _DESCEND)]
    while stack:
        node, phase = stack.pop()
        if phase == _DESCEND:
            stack.append((node, _PROCESS))
            for child in node.children.values():
                stack.append((child, _DESCEND))
        else:
            yield node


def iter_pre_order(root: CallTreeNode) -> Iterator[tuple[CallTreeNode, Optional[CallTreeNode], int]]:
    """Yield ``(node, parent, depth)`` with parents before children."""
    stack: list[tuple[CallTreeNode, Optional[CallTreeNode], int]] = [(root, None, 0)]
    while stack:
        node, parent, depth = stack.pop()
        yield node, parent, depth
        for child in reversed(list(node.children.values())):
            stack.append((child, node, depth + 1))


def find_node(root: CallTreeNode, path: str) -> Optional[CallTreeNode]:
    """Follow ``path`` down from ``root``; None when any segment is missing."""
    if path == root.path:
        return root
    prefix = root.path + PATH_SEP
    if not path.startswith(prefix):
        return None
    node = root
    rest = path[len(prefix):]
    # Names may contain the separator, so try the longest matching child first.
    while rest:
        match = None
        for name, child in node.children.items():
            if rest == name or rest.startswith(name + PATH_SEP):
                if match is None or len(name) > len(match.name):
                    match = child
        if match is None:
            return None
        node = match
        rest = rest[len(match.name) + 1:]
    return node


def resum(root: CallTreeNode, excluded: Optional[Callable[[CallTreeNode], bool]] = None) -> CallTreeNode:
    """Recompute value, cpu aggregates and time bounds bottom-up.

    Nodes for which ``excluded`` returns True contribute nothing of their own,
    but are still walked so the tree shape stays intact.
    """
    for node in iter_post_order(root):
        own = [] if excluded is not None and excluded(node) else node.own_samples
        value = len(own)
        total = sum(s.cpu_cost for s in own)
        peak = max((s.cpu_cost for s in own), default=0)
        start = min((s.time for s in own), default=None)
        end = max((s.time for s in own), default=None)
        for child in node.children.values():
            value += child.value
            total += child.total_cpu_cost
            peak = max(peak, child.max_cpu_cost)
            if child.start_time is not None and (start is None or child.start_time < start):
                start = child.start_time
            if child.end_time is not None and (end is None or child.end_time > end):
                end = child.end_time
        node.value = value
        node.total_cpu_cost = total
        node.max_cpu_cost = peak
        if excluded is None:
            node.start_time, node.end_time = start, end
    return root


def build_call_tree(samples: Iterable[Sample]) -> CallTreeNode:
    """Merge samples into a call tree rooted at a synthetic ``root`` node."""
    root = new_root()
    count = 0
    for sample in samples:
        count += 1
        frames = collapse_unknown_runs(sample.stack, sample.process)
        if not frames:
            continue
        root.cover(sample.time)
        node = root
        for frame in frames:
            child = node.children.get(frame)
            if child is None:
                child = CallTreeNode(name=frame, path=node.child_path(frame), process=sample.process)
                node.children[frame] = child
            child.cover(sample.time)
            node = child
        node.own_samples.append(OwnSample(time=sample.time, cpu_cost=sample.cpu_cost))
    resum(root)
    logger.info("Call tree built: samples=%d root_value=%d", count, root.value)
    return root


def copy_tree(root: CallTreeNode) -> CallTreeNode:
    """Structural copy; own-sample records are immutable and shared."""
    clone_root = _clone(root)
    stack = [(root, clone_root)]
    while stack:
        src, dst = stack.pop()
        for name, child in src.children.items():
            clone = _clone(child)
            dst.children[name] = clone
            stack.append((child, clone))
    return clone_root


def _clone(node: CallTreeNode) -> CallTreeNode:
    return CallTreeNode(
        name=node.name,
        path=node.path,
        value=node.value,
        start_time=node.start_time,
        end_time=node.end_time,
        total_cpu_cost=node.total_cpu_cost,
        max_cpu_cost=node.max_cpu_cost,
        own_samples=list(node.own_samples),
        process=node.process,
    )


def count_descendants(node: CallTreeNode) -> int:
    return sum(1 for _ in iter_post_order(node)) - 1


def max_depth(root: CallTreeNode) -> int:
    return max(depth for _, _, depth in iter_pre_order(root))


def node_to_dict(root: CallTreeNode) -> dict[str, Any]:
    """JSON-ready nested dict, children in descending value order."""
    out_root: dict[str, Any] = {}
    stack: list[tuple[CallTreeNode, dict[str, Any]]] = [(root, out_root)]
    while stack:
        node, out = stack.pop()
        out.update(
            {
                "name": node.name,
                "path": node.path,
                "value": node.value,
                "self_value": node.own_count,
                "start_time": node.start_time,
                "end_time": node.end_time,
                "total_cpu_cost": node.total_cpu_cost,
                "max_cpu_cost": node.max_cpu_cost,
                "avg_cpu_cost": node.total_cpu_cost / node.value if node.value else 0.0,
                "process": node.process,
                "children": [],
            }
        )
        for child in sorted_children(node):
            child_out: dict[str, Any] = {}
            out["children"].append(child_out)
            stack.append((child, child_out))
    return out_root


def sorted_children(node: CallTreeNode) -> List[CallTreeNode]:
    """Children by descending value; ties keep insertion order."""
    return sorted(node.children.values(), key=lambda c: -c.value)
