"""Background trace loading.

Parsing and model building run on a worker thread, one request per loaded
file.  Each submission takes a new ``load_id``; a result is delivered only if
no newer submission has been made in the meantime, so a slow parse of an old
file can never overwrite a newer one.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Literal, Optional

from perfexplorer.analysis.runtime.buckets import BucketGrid, build_bucket_grid
from perfexplorer.analysis.runtime.calltree import CallTreeNode, build_call_tree
from perfexplorer.analysis.runtime.traces.perf_script_parser import Sample, parse_perf_script

from .errors import TraceError

logger = logging.getLogger(__name__)


@dataclass
class LoadedTrace:
    samples: List[Sample]
    call_tree: CallTreeNode
    grid: BucketGrid
    load_id: int = 0
    source: Optional[str] = None


@dataclass
class LoadResult:
    status: Literal["success", "error"]
    load_id: int
    trace: Optional[LoadedTrace] = None
    message: Optional[str] = None


def load_trace(text: str, *, load_id: int = 0, source: Optional[str] = None) -> LoadedTrace:
    """Parse ``text`` and build both models; raises ``TraceError`` subclasses."""
    samples = parse_perf_script(text)
    call_tree = build_call_tree(samples)
    grid = build_bucket_grid(samples)
    logger.info("Trace loaded: load_id=%d source=%s samples=%d", load_id, source, len(samples))
    return LoadedTrace(samples=samples, call_tree=call_tree, grid=grid, load_id=load_id, source=source)


@dataclass
class TraceLoader:
    """Fire-and-forget parse requests; only the newest result is delivered."""

    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _latest_id: int = field(default=0, init=False)
    _threads: dict = field(default_factory=dict, init=False, repr=False)

    @property
    def latest_id(self) -> int:
        with self._lock:
            return self._latest_id

    def is_current(self, load_id: int) -> bool:
        with self._lock:
            return load_id == self._latest_id

    def next_id(self) -> int:
        with self._lock:
            self._latest_id += 1
            return self._latest_id

    def submit(
        self,
        text: str,
        on_done: Callable[[LoadResult], None],
        *,
        source: Optional[str] = None,
    ) -> int:
        load_id = self.next_id()

        def runner() -> None:
            try:
                try:
                    trace = load_trace(text, load_id=load_id, source=source)
                    result = LoadResult(status="success", load_id=load_id, trace=trace)
                except TraceError as exc:
                    logger.warning("Trace load failed: load_id=%d error=%s", load_id, exc)
                    result = LoadResult(status="error", load_id=load_id, message=str(exc))
                if not self.is_current(load_id):
                    logger.warning("Trace load superseded: load_id=%d latest=%d", load_id, self.latest_id)
                    return
                on_done(result)
            finally:
                with self._lock:
                    self._threads.pop(load_id, None)

        thread = threading.Thread(target=runner, name=f"trace-load-{load_id}", daemon=True)
        with self._lock:
            self._threads[load_id] = thread
        thread.start()
        logger.info("Trace load submitted: load_id=%d source=%s bytes=%d", load_id, source, len(text))
        return load_id

    def wait(self, timeout: Optional[float] = None) -> None:
        """Block until every submitted load has settled."""
        with self._lock:
            threads = list(self._threads.values())
        for thread in threads:
            thread.join(timeout)
