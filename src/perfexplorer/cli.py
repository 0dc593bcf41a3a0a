"""CLI entrypoint using Typer."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer

from perfexplorer.analysis.runtime.calltree import node_to_dict
from perfexplorer.analysis.runtime.hotspot import rank_hotspots
from perfexplorer.analysis.runtime.metrics import trace_metrics
from perfexplorer.analysis.runtime.range_filter import filter_tree
from perfexplorer.core.config import ExplorerConfig, load_config
from perfexplorer.core.errors import ConfigError, TraceError
from perfexplorer.core.loader import LoadedTrace, load_trace
from perfexplorer.views import tree_state

app = typer.Typer(help="perf script explorer: call trees and sample heat maps")

ConfigOption = typer.Option(None, "--config", help="Path to config YAML")


def _load_config(path: Optional[str]) -> ExplorerConfig:
    try:
        cfg = load_config(path)
    except ConfigError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2)
    logging.basicConfig(level=cfg.log_level)
    return cfg


def _load(path: Path, cfg: ExplorerConfig) -> LoadedTrace:
    text = path.read_text(encoding=cfg.parser.encoding, errors=cfg.parser.errors)
    try:
        return load_trace(text, source=str(path))
    except TraceError as exc:
        typer.secho(f"{path}: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


@app.command()
def summary(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="perf script output"),
    config: Optional[str] = ConfigOption,
) -> None:
    # Demo: perfexplorer summary my_profile.perf
    # Purpose: headline metrics + hottest frames by self samples.
    cfg = _load_config(config)
    trace = _load(path, cfg)
    for metric in trace_metrics(trace.samples, trace.call_tree):
        unit = f" {metric.unit}" if metric.unit else ""
        typer.echo(f"{metric.metric_name}: {metric.value:g}{unit}")
    typer.echo("hotspots:")
    for hs in rank_hotspots(trace.call_tree, top_n=cfg.hotspots.top_n):
        typer.echo(f"  {hs.symbol}  self={hs.self_samples}  share={hs.score:.1%}  cpu={hs.total_cpu_cost}")


@app.command()
def flamegraph(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="perf script output"),
    min_time: Optional[float] = typer.Option(None, "--min", help="Window start, seconds from the first sample"),
    max_time: Optional[float] = typer.Option(None, "--max", help="Window end, seconds from the first sample"),
    with_layout: bool = typer.Option(False, "--layout", help="Print rectangles instead of the tree"),
    width: Optional[int] = typer.Option(None, help="Layout width (defaults to config)"),
    height: Optional[int] = typer.Option(None, help="Layout height (defaults to config)"),
    config: Optional[str] = ConfigOption,
) -> None:
    # Demo: perfexplorer flamegraph my_profile.perf --min 1.0 --max 2.5
    # Purpose: dump the (optionally time-filtered) call tree as JSON.
    cfg = _load_config(config)
    trace = _load(path, cfg)
    root = trace.call_tree
    if min_time is not None or max_time is not None:
        first = trace.grid.first_time or 0.0
        lo = first + (min_time if min_time is not None else 0.0)
        hi = first + (max_time if max_time is not None else float(trace.grid.max_time))
        root = filter_tree(root, lo, hi)
        if root is None:
            typer.secho("No samples in the selected window", fg=typer.colors.YELLOW, err=True)
            raise typer.Exit(code=1)

    if not with_layout:
        typer.echo(json.dumps(node_to_dict(root), indent=2))
        return

    view = tree_state.recompute(
        tree_state.initial_state(root),
        width or cfg.layout.width,
        height or cfg.layout.height,
        padding=cfg.layout.padding,
    )
    rects = [{"path": p, "value": view.nodes[p].value, **r.to_dict()} for p, r in view.rects.items()]
    typer.echo(json.dumps(rects, indent=2))


@app.command()
def heatmap(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="perf script output"),
    config: Optional[str] = ConfigOption,
) -> None:
    # Demo: perfexplorer heatmap my_profile.perf > grid.json
    # Purpose: sample density per 100ms slot.
    cfg = _load_config(config)
    trace = _load(path, cfg)
    typer.echo(json.dumps(trace.grid.to_dict(), indent=2))


if __name__ == "__main__":
    app()
