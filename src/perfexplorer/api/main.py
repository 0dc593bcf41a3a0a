"""FastAPI application serving the explorer front-end."""

from __future__ import annotations

import logging
import os
from typing import Annotated, Literal, Optional

from fastapi import Body, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from perfexplorer.core.config import load_config
from perfexplorer.core.session import ExplorerSession
from perfexplorer.views import grid_selection, tree_state
from perfexplorer.views.grid_selection import Cell, TimeRange

CONFIG_PATH = os.getenv("PERFEXPLORER_CONFIG")
APP_CONFIG = load_config(CONFIG_PATH)
SESSION = ExplorerSession(APP_CONFIG)

app = FastAPI(title="Perf Explorer API", version="0.1.0")
logging.basicConfig(level=APP_CONFIG.log_level)
logger = logging.getLogger(__name__)
app.add_middleware(
    CORSMiddleware,
    allow_origins=APP_CONFIG.api.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class TracePayload(BaseModel):
    text: str
    source: Optional[str] = None


class TimeRangePayload(BaseModel):
    min: float
    max: float


class GridEventPayload(BaseModel):
    type: Literal["pointer_down", "pointer_over", "pointer_up", "pointer_leave"]
    second: Optional[int] = None
    interval: Optional[int] = None
    shift: bool = False
    additive: bool = False
    pressed: bool = True


class TreeActionPayload(BaseModel):
    type: Literal[
        "collapse", "expand", "toggle_collapse", "expand_all", "prune", "clear_pruned", "zoom", "color_mode"
    ]
    name: Optional[str] = None
    path: Optional[str] = None
    mode: Optional[Literal["name", "cpu_cost"]] = None


def _require_loaded() -> None:
    if SESSION.trace is None:
        raise HTTPException(status_code=409, detail="no trace loaded")


def _grid_event(payload: GridEventPayload) -> grid_selection.GridEvent:
    if payload.type in ("pointer_down", "pointer_over"):
        if payload.second is None or payload.interval is None:
            raise HTTPException(status_code=400, detail="second and interval are required")
        cell = Cell(payload.second, payload.interval)
        if payload.type == "pointer_down":
            return grid_selection.PointerDown(cell, shift=payload.shift, additive=payload.additive)
        return grid_selection.PointerOver(cell, shift=payload.shift, additive=payload.additive)
    if payload.type == "pointer_up":
        return grid_selection.PointerUp()
    return grid_selection.PointerLeave(pressed=payload.pressed)


def _tree_action(payload: TreeActionPayload) -> tree_state.TreeAction:
    if payload.type in ("collapse", "expand", "toggle_collapse"):
        if not payload.name:
            raise HTTPException(status_code=400, detail="name is required")
        cls = {
            "collapse": tree_state.Collapse,
            "expand": tree_state.Expand,
            "toggle_collapse": tree_state.ToggleCollapse,
        }[payload.type]
        return cls(payload.name)
    if payload.type == "prune":
        if not payload.path:
            raise HTTPException(status_code=400, detail="path is required")
        return tree_state.Prune(payload.path)
    if payload.type == "zoom":
        return tree_state.Zoom(payload.path)
    if payload.type == "color_mode":
        if payload.mode is None:
            raise HTTPException(status_code=400, detail="mode is required")
        return tree_state.SetColorMode(payload.mode)
    if payload.type == "expand_all":
        return tree_state.ExpandAll()
    return tree_state.ClearPruned()


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.post("/traces")
def submit_trace(payload: TracePayload) -> dict:
    load_id = SESSION.submit(payload.text, source=payload.source)
    logger.info("API: trace submitted load_id=%d", load_id)
    return {"status": "submitted", "load_id": load_id}


@app.get("/traces/status")
def trace_status() -> dict:
    return {
        "status": SESSION.status,
        "message": SESSION.error,
        "load_id": SESSION.trace.load_id if SESSION.trace else None,
    }


@app.get("/summary")
def summary() -> dict:
    _require_loaded()
    return SESSION.summary()


@app.get("/heatmap")
def heatmap() -> dict:
    _require_loaded()
    return SESSION.heatmap()


@app.post("/heatmap/events")
def heatmap_event(payload: GridEventPayload) -> dict:
    _require_loaded()
    state = SESSION.grid_event(_grid_event(payload))
    return {
        "selecting": state.selecting,
        "selected": [{"second": c.second, "interval": c.interval} for c in sorted(state.selected)],
        "time_range": state.time_range.to_dict() if state.time_range else None,
    }


@app.put("/time-range")
def put_time_range(payload: Annotated[Optional[TimeRangePayload], Body()] = None) -> dict:
    _require_loaded()
    time_range = TimeRange(payload.min, payload.max) if payload else None
    state = SESSION.select_time_range(time_range)
    return {
        "time_range": state.time_range.to_dict() if state.time_range else None,
        "selected": [{"second": c.second, "interval": c.interval} for c in sorted(state.selected)],
        "generation": SESSION.tree_state.generation,
    }


@app.get("/flamegraph")
def flamegraph(
    width: Annotated[Optional[float], Query(gt=0)] = None,
    height: Annotated[Optional[float], Query(gt=0)] = None,
) -> dict:
    _require_loaded()
    view = SESSION.flamegraph(width, height)
    nodes = []
    for path, rect in view.rects.items():
        node = view.nodes[path]
        nodes.append(
            {
                "name": node.name,
                "path": path,
                "value": node.value,
                "self_value": node.own_count,
                "process": node.process,
                "max_cpu_cost": node.max_cpu_cost,
                "total_cpu_cost": node.total_cpu_cost,
                "collapsed": view.is_collapsed(path),
                **rect.to_dict(),
            }
        )
    return {
        "generation": view.generation,
        "zoom_path": view.zoom_path,
        "color_mode": view.color_mode,
        "root_value": view.root.value,
        "nodes": nodes,
    }


@app.post("/flamegraph/actions")
def flamegraph_action(payload: TreeActionPayload) -> dict:
    _require_loaded()
    state = SESSION.dispatch(_tree_action(payload))
    return {
        "generation": state.generation,
        "collapsed": sorted(state.collapsed_by_name),
        "pruned": sorted(state.pruned_by_path),
        "zoom_path": state.zoom_path,
        "color_mode": state.color_mode,
    }
