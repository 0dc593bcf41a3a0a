"""perf script text parser.

``perf script`` prints one header line per captured sample followed by the
sampled call stack, innermost frame first::

    app 1234 [002] 5051.503456: cycles:
        ffffffff8100 do_syscall_64+0x3c ([kernel.kallsyms])
            7f12a4c0 main+0x12 (/usr/bin/app)

The header is ``<process> <cumulative-counter> [<cpu-id>] <timestamp>:``.
The counter is monotonic per CPU, so a sample's cost is the delta against the
previous header seen on the same CPU.
"""

from __future__ import annotations

import logging
import re
from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterable, List, Optional

from perfexplorer.core.errors import EmptyTraceError, FormatError

logger = logging.getLogger(__name__)

HEADER_RE = re.compile(r"^(\S+)\s+(\d+)\s+\[(\d+)\]\s+([\d.]+):")


@dataclass(frozen=True)
class Sample:
    stack: tuple[str, ...]
    time: float
    process: str
    cpu_cost: int


@dataclass
class _PendingSample:
    time: float
    process: str
    cpu_cost: int
    frames: Deque[str]

    def freeze(self) -> Sample:
        return Sample(stack=tuple(self.frames), time=self.time, process=self.process, cpu_cost=self.cpu_cost)


def clean_frame(token: str) -> str:
    """Drop the ``+offset`` suffix and rewrite managed-runtime ``Lpkg/Cls;method`` names."""
    frame = token.split("+", 1)[0]
    if frame.startswith("L") and ";" in frame:
        frame = frame[1:].replace(";", ".")
    return frame


def _frame_from_line(line: str) -> Optional[str]:
    tokens = line.split()
    if len(tokens) < 2:
        return None
    frame = clean_frame(tokens[1])
    return frame or None


def iter_samples(lines: Iterable[str]) -> Iterable[Sample]:
    """Yield samples as their stacks complete.

    Raises ``FormatError`` once the input is exhausted if no header was seen.
    """
    last_counter_by_cpu: dict[int, int] = {}
    current: Optional[_PendingSample] = None
    found_header = False
    discarded = 0

    for line in lines:
        match = HEADER_RE.match(line)
        if match:
            found_header = True
            if current is not None:
                yield current.freeze()
            process, counter_str, cpu_str, ts_str = match.groups()
            counter = int(counter_str)
            cpu = int(cpu_str)
            last = last_counter_by_cpu.get(cpu, 0)
            last_counter_by_cpu[cpu] = counter
            try:
                ts = float(ts_str)
            except ValueError:
                # e.g. "1.2.3:" matches the header shape but is not a timestamp
                discarded += 1
                current = None
                continue
            current = _PendingSample(time=ts, process=process, cpu_cost=max(0, counter - last), frames=deque())
        elif current is not None and line.strip():
            frame = _frame_from_line(line)
            if frame:
                current.frames.appendleft(frame)

    if current is not None:
        yield current.freeze()

    if discarded:
        logger.warning("Perf script headers discarded: count=%d reason=bad-timestamp", discarded)
    if not found_header:
        raise FormatError(
            "Invalid file format: no sample headers found. perf script output should contain "
            "lines like 'command 1234 [000] 123.456:'."
        )


def parse_perf_script(text: str) -> List[Sample]:
    """Parse ``perf script`` output into an ordered list of samples."""
    samples = list(iter_samples(text.splitlines()))
    if not samples:
        raise EmptyTraceError(
            "No complete samples could be parsed. Check that the file is not empty or truncated."
        )
    logger.info(
        "Perf script parsed: samples=%d processes=%d",
        len(samples),
        len({s.process for s in samples}),
    )
    return samples
