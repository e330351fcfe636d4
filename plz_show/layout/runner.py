"""
plz_show/layout/runner.py — Cancellable, single-writer layout execution.

A DependencyGraph's positions have exactly one writer: the LayoutRunner that
owns it. Layouts run one at a time on a single worker thread, each over a
snapshot of the graph taken at submission time, so the caller's thread is
never blocked by a long stress or ForceAtlas2 run.

Every submission gets a generation number. Submitting a new layout sets the
cancel event of the run before it; iterative algorithms check that event
once per iteration and bail out with LayoutCancelled. A run that finishes
after a newer one was submitted is discarded instead of committed, so only
the most recently requested layout ever reaches the graph.

Usage:
    with LayoutRunner(graph) as runner:
        future = runner.submit(LayoutConfig(algorithm="stress"))
        outcome = future.result()
        if outcome.committed:
            hulls = compute_package_hulls(graph)
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field

from plz_show.config import DEFAULT_CONFIG, LayoutConfig
from plz_show.errors import LayoutCancelled
from plz_show.graph.model import DependencyGraph
from plz_show.layout.engine import compute_layout

logger = logging.getLogger(__name__)


@dataclass
class LayoutOutcome:
    """Result of one submitted layout."""

    generation: int
    algorithm: str
    committed: bool = False
    cancelled: bool = False
    version: int | None = None
    # Graph layout_version after the commit; None if nothing was committed.
    positions: dict[str, tuple[float, float]] = field(default_factory=dict)


class LayoutRunner:
    def __init__(self, graph: DependencyGraph):
        self.graph = graph
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="plz-show-layout")
        self._lock = threading.Lock()
        self._generation = 0
        self._cancel_event: threading.Event | None = None

    def __enter__(self) -> "LayoutRunner":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()

    @property
    def generation(self) -> int:
        return self._generation

    def submit(self, config: LayoutConfig = DEFAULT_CONFIG) -> Future:
        """
        Queue a layout, superseding any layout still pending or running.

        Returns:
            Future resolving to a LayoutOutcome.
        """
        with self._lock:
            if self._cancel_event is not None:
                self._cancel_event.set()
            self._generation += 1
            generation = self._generation
            cancel_event = threading.Event()
            self._cancel_event = cancel_event
            snapshot = self.graph.copy()

        logger.debug("Layout generation %d submitted (%s).", generation, config.algorithm)
        return self._executor.submit(self._run, generation, snapshot, config, cancel_event)

    def cancel(self) -> None:
        """Cancel the latest submission, if it is still in flight."""
        with self._lock:
            if self._cancel_event is not None:
                self._cancel_event.set()

    def shutdown(self, wait: bool = True) -> None:
        self.cancel()
        self._executor.shutdown(wait=wait)

    def _run(
        self,
        generation: int,
        snapshot: DependencyGraph,
        config: LayoutConfig,
        cancel_event: threading.Event,
    ) -> LayoutOutcome:
        outcome = LayoutOutcome(generation=generation, algorithm=config.algorithm)
        if cancel_event.is_set():
            outcome.cancelled = True
            return outcome

        try:
            positions = compute_layout(snapshot, config, cancel_event)
        except LayoutCancelled:
            logger.debug("Layout generation %d cancelled.", generation)
            outcome.cancelled = True
            return outcome

        with self._lock:
            if generation != self._generation or cancel_event.is_set():
                logger.debug(
                    "Layout generation %d superseded by %d; result discarded.",
                    generation,
                    self._generation,
                )
                outcome.cancelled = True
                return outcome
            outcome.version = self.graph.commit_positions(positions)

        outcome.committed = True
        outcome.positions = positions
        logger.info(
            "Layout generation %d committed: %s, %d nodes, version %d.",
            generation,
            config.algorithm,
            len(positions),
            outcome.version,
        )
        return outcome
