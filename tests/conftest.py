from __future__ import annotations

import pytest

from perfexplorer.analysis.runtime.calltree import build_call_tree
from perfexplorer.analysis.runtime.traces.perf_script_parser import Sample, parse_perf_script


def make_trace(*samples: tuple[str, int, int, float, list[str]]) -> str:
    """Render ``(process, counter, cpu, time, stack leaf-last)`` tuples as perf script text."""
    lines = []
    for process, counter, cpu, ts, stack in samples:
        lines.append(f"{process} {counter} [{cpu:03d}] {ts:.6f}: cycles:")
        for addr, frame in enumerate(reversed(stack)):
            lines.append(f"\t    {addr + 0x1000:x} {frame}+0x{addr:x} (/usr/bin/{process})")
        lines.append("")
    return "\n".join(lines)


@pytest.fixture
def scenario_text() -> str:
    return make_trace(
        ("app", 100, 0, 0.00, ["a", "b"]),
        ("app", 150, 0, 0.05, ["a", "b"]),
        ("app", 400, 1, 0.15, ["a", "c"]),
    )


@pytest.fixture
def scenario_samples(scenario_text) -> list[Sample]:
    return parse_perf_script(scenario_text)


@pytest.fixture
def scenario_tree(scenario_samples):
    return build_call_tree(scenario_samples)


@pytest.fixture
def wide_text() -> str:
    """Two seconds of samples spread over several call paths."""
    samples = []
    counter = 0
    stacks = [
        ["main", "parse", "tokenize"],
        ["main", "parse", "tokenize"],
        ["main", "render", "draw"],
        ["main", "io", "read"],
    ]
    for i in range(40):
        counter += 10 + i
        samples.append(("app", counter, i % 2, 10.0 + i * 0.05, stacks[i % len(stacks)]))
    return make_trace(*samples)
