"""
Concurrent parsing of updated dependency reports.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import FIRST_COMPLETED, Executor, Future, wait
from typing import Collection, List, Mapping, Optional

from google.protobuf.message import DecodeError
from tqdm import tqdm

from .artifacts import ReportArtifact
from .cancellation import CancellationToken, OperationCancelled
from .deps_proto import decode_dependencies, is_relevant
from .models import ParseResult, TargetKey


logger = logging.getLogger(__name__)


class ByteCounter:
    """Running total of report bytes read, shared by all parse tasks."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._total = 0

    def add(self, amount: int) -> None:
        with self._lock:
            self._total += amount

    @property
    def total(self) -> int:
        with self._lock:
            return self._total


class ReportParser:
    """Fan report parsing out over a caller-owned executor and join the results."""

    def __init__(
        self,
        executor: Executor,
        token: CancellationToken,
        show_progress: bool = False,
        poll_interval: float = 0.05,
    ) -> None:
        self.executor = executor
        self.token = token
        self.show_progress = show_progress
        self.poll_interval = poll_interval
        self.bytes_read = ByteCounter()

    def parse_all(
        self,
        artifacts: Collection[ReportArtifact],
        artifact_targets: Mapping[ReportArtifact, TargetKey],
    ) -> List[Optional[ParseResult]]:
        """Parse every artifact concurrently and wait for all of them.

        Args:
            artifacts: Updated artifacts whose content is ready to read
            artifact_targets: Target that each artifact reports on

        Returns:
            One result per artifact, None where the report could not be used

        Raises:
            OperationCancelled: If the token is cancelled before the join completes
        """
        self.token.raise_if_cancelled()
        futures = [
            self.executor.submit(self._parse_one, artifact, artifact_targets.get(artifact))
            for artifact in artifacts
        ]
        self._join(futures)
        self.token.raise_if_cancelled()
        return [future.result() for future in futures]

    def _join(self, futures: List["Future[Optional[ParseResult]]"]) -> None:
        pending = set(futures)
        with tqdm(
            total=len(futures),
            desc="Reading dependency reports",
            unit="file",
            disable=not self.show_progress,
        ) as pbar:
            while pending:
                if self.token.cancelled:
                    for future in pending:
                        future.cancel()
                    raise OperationCancelled()
                done, pending = wait(pending, timeout=self.poll_interval, return_when=FIRST_COMPLETED)
                pbar.update(len(done))

    def _parse_one(
        self,
        artifact: ReportArtifact,
        target: Optional[TargetKey],
    ) -> Optional[ParseResult]:
        self.token.raise_if_cancelled()
        self.bytes_read.add(artifact.length)
        try:
            with artifact.open_stream() as stream:
                records = decode_dependencies(stream)
        except FileNotFoundError:
            logger.info("Could not open dependency report: %s", artifact.key)
            return None
        except DecodeError as e:
            logger.warning("Malformed dependency report %s: %s", artifact.key, e)
            return None

        if target is None:
            return None
        dependencies = tuple(record.path for record in records if is_relevant(record))
        return ParseResult(
            artifact=artifact.to_fingerprint(),
            target=target,
            dependencies=dependencies,
        )
