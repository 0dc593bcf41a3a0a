"""Collapse / prune / zoom state for one call tree view.

The state is an immutable value; ``reduce`` maps ``(state, action)`` to a new
state and bumps ``generation`` whenever something changed.  ``recompute``
derives the annotated tree and the visible, laid-out node set from it.

Two identity schemes coexist on purpose:

- collapse is keyed by frame *name*, so collapsing one occurrence of a
  recursive or shared frame collapses every node with that name;
- prune is keyed by *path*, and pruning a node prunes its whole subtree.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, Literal, Mapping, Optional, Union

from perfexplorer.analysis.runtime.calltree import (
    CallTreeNode,
    copy_tree,
    iter_post_order,
    iter_pre_order,
    new_root,
    resum,
)

from .partition import Rect, layout

logger = logging.getLogger(__name__)

ColorMode = Literal["name", "cpu_cost"]


@dataclass(frozen=True)
class TreeIndex:
    nodes_by_path: Mapping[str, CallTreeNode]
    names: FrozenSet[str]

    @classmethod
    def of(cls, root: CallTreeNode) -> "TreeIndex":
        nodes: Dict[str, CallTreeNode] = {}
        names = set()
        for node, _, _ in iter_pre_order(root):
            nodes[node.path] = node
            names.add(node.name)
        return cls(nodes_by_path=nodes, names=frozenset(names))


@dataclass(frozen=True)
class TreeViewState:
    tree: CallTreeNode = field(compare=False)
    index: TreeIndex = field(compare=False)
    collapsed_by_name: FrozenSet[str] = frozenset()
    pruned_by_path: FrozenSet[str] = frozenset()
    zoom_path: Optional[str] = None
    color_mode: ColorMode = "name"
    generation: int = 0


# Actions


@dataclass(frozen=True)
class Collapse:
    name: str


@dataclass(frozen=True)
class Expand:
    name: str


@dataclass(frozen=True)
class ToggleCollapse:
    name: str


@dataclass(frozen=True)
class ExpandAll:
    pass


@dataclass(frozen=True)
class Prune:
    path: str


@dataclass(frozen=True)
class ClearPruned:
    pass


@dataclass(frozen=True)
class Zoom:
    path: Optional[str]


@dataclass(frozen=True)
class SetColorMode:
    mode: ColorMode


@dataclass(frozen=True)
class SetTree:
    """Swap in another view of the trace; collapse/prune/zoom keys carry over."""

    tree: CallTreeNode = field(compare=False)


TreeAction = Union[Collapse, Expand, ToggleCollapse, ExpandAll, Prune, ClearPruned, Zoom, SetColorMode, SetTree]


def initial_state(tree: Optional[CallTreeNode] = None) -> TreeViewState:
    tree = tree if tree is not None else new_root()
    return TreeViewState(tree=tree, index=TreeIndex.of(tree))


def _bump(state: TreeViewState, **changes) -> TreeViewState:
    return replace(state, generation=state.generation + 1, **changes)


def reduce(state: TreeViewState, action: TreeAction) -> TreeViewState:
    """Apply one action; unknown names/paths leave the state untouched."""
    if isinstance(action, Collapse):
        if action.name not in state.index.names or action.name in state.collapsed_by_name:
            return state
        return _bump(state, collapsed_by_name=state.collapsed_by_name | {action.name})

    if isinstance(action, Expand):
        if action.name not in state.collapsed_by_name:
            return state
        return _bump(state, collapsed_by_name=state.collapsed_by_name - {action.name})

    if isinstance(action, ToggleCollapse):
        if action.name in state.collapsed_by_name:
            return reduce(state, Expand(action.name))
        return reduce(state, Collapse(action.name))

    if isinstance(action, ExpandAll):
        if not state.collapsed_by_name:
            return state
        return _bump(state, collapsed_by_name=frozenset())

    if isinstance(action, Prune):
        node = state.index.nodes_by_path.get(action.path)
        if node is None:
            return state
        paths = {n.path for n in iter_post_order(node)}
        if paths <= state.pruned_by_path:
            return state
        return _bump(state, pruned_by_path=state.pruned_by_path | paths)

    if isinstance(action, ClearPruned):
        if not state.pruned_by_path:
            return state
        return _bump(state, pruned_by_path=frozenset())

    if isinstance(action, Zoom):
        if action.path is not None and action.path not in state.index.nodes_by_path:
            return state
        if action.path == state.zoom_path:
            return state
        return _bump(state, zoom_path=action.path)

    if isinstance(action, SetColorMode):
        if action.mode == state.color_mode:
            return state
        return _bump(state, color_mode=action.mode)

    if isinstance(action, SetTree):
        return _bump(state, tree=action.tree, index=TreeIndex.of(action.tree))

    raise TypeError(f"Unknown tree action: {action!r}")


@dataclass
class TreeView:
    """One recomputed snapshot handed to the renderer."""

    generation: int
    root: CallTreeNode
    pruned: FrozenSet[str]
    collapsed_by_name: FrozenSet[str]
    zoom_path: Optional[str]
    color_mode: ColorMode
    rects: Dict[str, Rect]
    nodes: Dict[str, CallTreeNode]

    @property
    def visible(self) -> FrozenSet[str]:
        return frozenset(self.rects)

    def is_collapsed(self, path: str) -> bool:
        node = self.nodes.get(path)
        return node is not None and node.name in self.collapsed_by_name


def effective_pruned(root: CallTreeNode, pruned_by_path: FrozenSet[str]) -> FrozenSet[str]:
    """Paths pruned directly or through any ancestor."""
    pruned = set()
    for node, parent, _ in iter_pre_order(root):
        if node.path in pruned_by_path or (parent is not None and parent.path in pruned):
            pruned.add(node.path)
    return frozenset(pruned)


def recompute(state: TreeViewState, width: float, height: float, padding: float = 1.0) -> TreeView:
    """Annotate a copy of the active tree and lay out the visible nodes."""
    root = copy_tree(state.tree)
    pruned = effective_pruned(root, state.pruned_by_path)
    resum(root, excluded=lambda n: n.path in pruned)

    hidden = set()
    for node, parent, _ in iter_pre_order(root):
        if parent is not None and (parent.path in hidden or parent.name in state.collapsed_by_name):
            hidden.add(node.path)

    rects = layout(
        root,
        width,
        height,
        zoom_path=state.zoom_path,
        padding=padding,
        include=lambda n: n.path not in pruned and n.path not in hidden,
    )
    nodes = {node.path: node for node, _, _ in iter_pre_order(root) if node.path in rects}
    logger.debug(
        "Tree view recomputed: generation=%d visible=%d pruned=%d collapsed=%d",
        state.generation,
        len(rects),
        len(pruned),
        len(state.collapsed_by_name),
    )
    return TreeView(
        generation=state.generation,
        root=root,
        pruned=pruned,
        collapsed_by_name=state.collapsed_by_name,
        zoom_path=state.zoom_path,
        color_mode=state.color_mode,
        rects=rects,
        nodes=nodes,
    )
