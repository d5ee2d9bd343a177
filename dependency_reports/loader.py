"""
Incremental loading of compiler dependency reports.
"""

from __future__ import annotations

import logging
import os
import time
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from .artifacts import ReportArtifact
from .cancellation import CancellationToken, OperationCancelled
from .diff import diff_artifacts
from .fetch import PrefetchCoordinator
from .interfaces import ArtifactResolver, FetchService, ProgressSink, StateStore
from .lookup import DependencyLookup
from .models import LoadResult, LoadStatus, TargetInfo, TargetKey
from .parser import ReportParser
from .reporting import LoggingProgressSink
from .state import DependencyState


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoaderConfig:
    """Tuning knobs for a loader instance."""

    max_workers: Optional[int] = None
    poll_interval: float = 0.05
    fetch_priority: bool = True
    show_progress: bool = False

    def resolved_workers(self) -> int:
        if self.max_workers is not None:
            return max(1, self.max_workers)
        return min(32, (os.cpu_count() or 1) + 4)


class DependencyReportLoader:
    """Load dependency reports that changed since the previous run."""

    def __init__(
        self,
        resolver: ArtifactResolver,
        fetch_service: FetchService,
        executor: Executor,
        sink: Optional[ProgressSink] = None,
        config: Optional[LoaderConfig] = None,
    ) -> None:
        """Initialize the loader.

        Args:
            resolver: Maps each target's declared report to an artifact
            fetch_service: Makes changed reports readable before parsing
            executor: Caller-owned worker pool for parse tasks
            sink: Receives the run summary; defaults to the module logger
            config: Loader tuning, defaults to ``LoaderConfig()``
        """
        self.resolver = resolver
        self.fetch_service = fetch_service
        self.executor = executor
        self.sink = sink if sink is not None else LoggingProgressSink()
        self.config = config if config is not None else LoaderConfig()

    def load(
        self,
        targets: Iterable[TargetInfo],
        previous_state: Optional[DependencyState],
        token: Optional[CancellationToken] = None,
    ) -> LoadResult:
        """Load updated reports and merge them with the previous state.

        The previous state is never modified. On failure or cancellation the
        result carries neither a state nor a lookup, and callers keep using
        the ones from their last successful run.

        Args:
            targets: Targets whose dependencies should be available
            previous_state: State returned by the last successful run, or None
            token: Cancellation token checked at every suspension point

        Returns:
            The outcome of this run
        """
        token = token if token is not None else CancellationToken()
        start = time.perf_counter()
        try:
            result = self._load(targets, previous_state, token)
        except OperationCancelled:
            logger.info("Loading dependency reports was cancelled")
            return LoadResult(status=LoadStatus.CANCELLED)
        except Exception as e:
            logger.exception("Loading dependency reports failed")
            return LoadResult(status=LoadStatus.FAILED, error=str(e))
        logger.debug("LoadDependencyReports took %.2fs", time.perf_counter() - start)
        return result

    def sync(
        self,
        targets: Iterable[TargetInfo],
        store: StateStore,
        token: Optional[CancellationToken] = None,
    ) -> LoadResult:
        """Run ``load`` against a state store, saving only successful results."""
        result = self.load(targets, store.load(), token)
        if result.succeeded and result.state is not None:
            store.save(result.state)
        return result

    def _load(
        self,
        targets: Iterable[TargetInfo],
        previous_state: Optional[DependencyState],
        token: CancellationToken,
    ) -> LoadResult:
        artifact_targets: Dict[ReportArtifact, TargetKey] = {}
        for target in targets:
            artifact = self.resolver.resolve(target)
            if artifact is not None:
                artifact_targets[artifact] = target.key

        previous = previous_state.artifact_fingerprints() if previous_state is not None else None
        diff = diff_artifacts(previous, frozenset(artifact_targets))
        logger.debug(
            "%d dependency reports updated, %d removed",
            len(diff.updated),
            len(diff.removed),
        )

        coordinator = PrefetchCoordinator(
            self.fetch_service,
            token,
            priority=self.config.fetch_priority,
            poll_interval=self.config.poll_interval,
        )
        if not coordinator.prefetch(diff.updated):
            logger.warning("Fetching dependency reports failed; keeping previous state")
            return LoadResult(status=LoadStatus.FAILED, error="fetch failed")

        parser = ReportParser(
            self.executor,
            token,
            show_progress=self.config.show_progress,
            poll_interval=self.config.poll_interval,
        )
        results = parser.parse_all(diff.updated, artifact_targets)

        state = DependencyState.merge(
            previous_state,
            diff.updated_fingerprints,
            diff.removed,
            results,
        )
        bytes_read = parser.bytes_read.total
        self.sink.report(
            f"Loaded {len(diff.updated)} dependency reports, total size {bytes_read // 1024}kB"
        )
        return LoadResult(
            status=LoadStatus.SUCCESS,
            lookup=DependencyLookup.from_state(state),
            state=state,
            loaded_count=len(diff.updated),
            bytes_read=bytes_read,
        )
