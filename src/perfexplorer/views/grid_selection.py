"""Drag selection over the bucket grid.

Pointer gestures select cells; releasing the pointer turns the selected set
into a time range in relative seconds.  Setting a range from outside works
the other way round and re-derives which cells are highlighted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import FrozenSet, Iterable, Optional, Union

from perfexplorer.analysis.runtime.buckets import INTERVALS_PER_SECOND, BucketGrid

logger = logging.getLogger(__name__)

# Cell bounds are computed in floats; keep boundary-touching cells apart.
OVERLAP_EPSILON = 1e-9


@dataclass(frozen=True, order=True)
class Cell:
    second: int
    interval: int

    @property
    def start(self) -> float:
        return (self.second * INTERVALS_PER_SECOND + self.interval) / INTERVALS_PER_SECOND

    @property
    def end(self) -> float:
        return (self.second * INTERVALS_PER_SECOND + self.interval + 1) / INTERVALS_PER_SECOND


@dataclass(frozen=True)
class TimeRange:
    min: float
    max: float

    def to_dict(self) -> dict[str, float]:
        return {"min": self.min, "max": self.max}


@dataclass(frozen=True)
class GridSelection:
    cells: FrozenSet[Cell] = frozenset()
    selected: FrozenSet[Cell] = frozenset()
    selecting: bool = False
    anchor: Optional[Cell] = None
    time_range: Optional[TimeRange] = None


@dataclass(frozen=True)
class PointerDown:
    cell: Cell
    shift: bool = False
    additive: bool = False


@dataclass(frozen=True)
class PointerOver:
    cell: Cell
    shift: bool = False
    additive: bool = False


@dataclass(frozen=True)
class PointerUp:
    pass


@dataclass(frozen=True)
class PointerLeave:
    pressed: bool


@dataclass(frozen=True)
class SetTimeRange:
    time_range: Optional[TimeRange]


GridEvent = Union[PointerDown, PointerOver, PointerUp, PointerLeave, SetTimeRange]


def selection_for_grid(grid: BucketGrid) -> GridSelection:
    return GridSelection(cells=frozenset(Cell(b.second, b.interval) for b in grid.buckets))


def span_cells(anchor: Cell, current: Cell) -> set[Cell]:
    """Cells covered by a shift-drag from ``anchor`` to ``current``.

    Inner columns are taken whole.  The anchor column runs from the anchor's
    interval to the top, the current column from the bottom to the current
    interval, whichever way the drag goes.  Within a single column only the
    intervals between the two cells are taken.
    """
    lo = min(anchor.second, current.second)
    hi = max(anchor.second, current.second)
    cells: set[Cell] = set()
    for second in range(lo, hi + 1):
        start, end = 0, INTERVALS_PER_SECOND - 1
        if anchor.second == current.second:
            start = min(anchor.interval, current.interval)
            end = max(anchor.interval, current.interval)
        elif second == anchor.second:
            start = anchor.interval
        elif second == current.second:
            end = current.interval
        cells.update(Cell(second, interval) for interval in range(start, end + 1))
    return cells


def derive_time_range(cells: Iterable[Cell]) -> Optional[TimeRange]:
    cells = list(cells)
    if not cells:
        return None
    return TimeRange(min=min(c.start for c in cells), max=max(c.end for c in cells))


def cells_in_range(cells: Iterable[Cell], time_range: Optional[TimeRange]) -> FrozenSet[Cell]:
    """Cells whose ``[start, end)`` overlaps ``[min, max)``."""
    if time_range is None:
        return frozenset()
    return frozenset(
        c
        for c in cells
        if max(c.start, time_range.min) < min(c.end, time_range.max) - OVERLAP_EPSILON
    )


def _finish(state: GridSelection) -> GridSelection:
    time_range = derive_time_range(state.selected)
    logger.debug("Grid selection finished: cells=%d range=%s", len(state.selected), time_range)
    return replace(state, selecting=False, anchor=None, time_range=time_range)


def reduce(state: GridSelection, event: GridEvent) -> GridSelection:
    """Apply one pointer or range event to the selection."""
    if isinstance(event, PointerDown):
        if event.cell not in state.cells:
            return state
        # plain and shift presses start over; the additive modifier keeps what is there
        selected = state.selected if event.additive and not event.shift else frozenset()
        return replace(
            state,
            selecting=True,
            anchor=event.cell,
            selected=selected | {event.cell},
        )

    if isinstance(event, PointerOver):
        if not state.selecting or event.cell not in state.cells:
            return state
        if event.shift and state.anchor is not None:
            base = state.selected if event.additive else frozenset()
            span = span_cells(state.anchor, event.cell) & state.cells
            return replace(state, selected=base | span)
        if event.shift:
            return state
        if event.cell in state.selected:
            return state
        return replace(state, selected=state.selected | {event.cell})

    if isinstance(event, PointerUp):
        if not state.selecting:
            return state
        return _finish(state)

    if isinstance(event, PointerLeave):
        if not event.pressed or not state.selecting:
            return state
        return _finish(state)

    if isinstance(event, SetTimeRange):
        return replace(
            state,
            selecting=False,
            anchor=None,
            time_range=event.time_range,
            selected=cells_in_range(state.cells, event.time_range),
        )

    raise TypeError(f"Unknown grid event: {event!r}")
