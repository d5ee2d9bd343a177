"""
Bulk fetching of report content before parsing.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import Executor, Future, TimeoutError as FutureTimeoutError
from pathlib import Path
from typing import Collection, Optional

import requests
from tqdm import tqdm

from .artifacts import LocalArtifact, RemoteArtifact, ReportArtifact
from .cancellation import CancellationToken, OperationCancelled
from .interfaces import FetchService


logger = logging.getLogger(__name__)


class LocalFetchService:
    """Fetch service for reports that are already on local disk.

    Nothing needs fetching, so the future always succeeds. A report that
    vanished is skipped when the parser fails to open it.
    """

    def prefetch(
        self,
        artifacts: Collection[ReportArtifact],
        priority: bool = True,
        blocking: bool = False,
    ) -> "Future[bool]":
        future: "Future[bool]" = Future()
        for artifact in artifacts:
            if isinstance(artifact, LocalArtifact) and not artifact.path.exists():
                logger.debug("Dependency report not present at fetch time: %s", artifact.key)
        future.set_result(True)
        return future


class HttpFetchService:
    """Download remote reports into a local cache directory."""

    def __init__(
        self,
        cache_dir: Path,
        executor: Executor,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
        show_progress: bool = False,
        token: Optional[CancellationToken] = None,
    ) -> None:
        """Initialize the HTTP fetch service.

        Args:
            cache_dir: Directory that downloaded reports are stored in
            executor: Executor the download batch runs on
            session: Session to reuse for requests
            timeout: Per-request timeout in seconds
            show_progress: Whether to draw a download progress bar
            token: Cancellation token checked between downloaded chunks
        """
        self.cache_dir = Path(cache_dir)
        self.executor = executor
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.show_progress = show_progress
        self.token = token if token is not None else CancellationToken()

    def prefetch(
        self,
        artifacts: Collection[ReportArtifact],
        priority: bool = True,
        blocking: bool = False,
    ) -> "Future[bool]":
        remote = [
            artifact
            for artifact in artifacts
            if isinstance(artifact, RemoteArtifact) and not artifact.cache_path.exists()
        ]
        if blocking:
            future: "Future[bool]" = Future()
            future.set_result(self._download_all(remote))
            return future
        return self.executor.submit(self._download_all, remote)

    def _download_all(self, artifacts: Collection[RemoteArtifact]) -> bool:
        if not artifacts:
            return True
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        total_size = sum(artifact.length for artifact in artifacts)
        with tqdm(
            total=total_size or None,
            unit="B",
            unit_scale=True,
            desc="Downloading dependency reports",
            disable=not self.show_progress,
        ) as pbar:
            for artifact in artifacts:
                try:
                    self._download(artifact, pbar)
                except OperationCancelled:
                    logger.info("Download of dependency reports cancelled at %s", artifact.uri)
                    return False
                except (requests.RequestException, OSError) as e:
                    logger.warning("Failed to download %s: %s", artifact.uri, e)
                    return False
        return True

    def _download(self, artifact: RemoteArtifact, pbar: tqdm) -> None:
        self.token.raise_if_cancelled()
        artifact.cache_path.parent.mkdir(parents=True, exist_ok=True)
        tmp = artifact.cache_path.with_name(artifact.cache_path.name + ".part")
        try:
            with self.session.get(artifact.uri, stream=True, timeout=self.timeout) as response:
                response.raise_for_status()
                with open(tmp, "wb") as f:
                    for chunk in response.iter_content(chunk_size=8192):
                        self.token.raise_if_cancelled()
                        f.write(chunk)
                        pbar.update(len(chunk))
            tmp.replace(artifact.cache_path)
        finally:
            tmp.unlink(missing_ok=True)
        logger.debug("Downloaded %s to %s", artifact.uri, artifact.cache_path)


class PrefetchCoordinator:
    """Request prefetching of changed reports and wait for it."""

    def __init__(
        self,
        service: FetchService,
        token: CancellationToken,
        priority: bool = True,
        poll_interval: float = 0.05,
    ) -> None:
        self.service = service
        self.token = token
        self.priority = priority
        self.poll_interval = poll_interval

    def prefetch(self, artifacts: Collection[ReportArtifact]) -> bool:
        """Block until the fetch service has made every artifact readable.

        Args:
            artifacts: Artifacts that will be parsed this run

        Returns:
            True if the fetch service reported success

        Raises:
            OperationCancelled: If the token is cancelled while waiting
        """
        self.token.raise_if_cancelled()
        start = time.perf_counter()
        future = self.service.prefetch(artifacts, priority=self.priority, blocking=False)
        while True:
            if self.token.cancelled:
                future.cancel()
                raise OperationCancelled()
            try:
                success = bool(future.result(timeout=self.poll_interval))
                break
            except FutureTimeoutError:
                continue
            except Exception:
                logger.exception("Fetching dependency reports failed")
                success = False
                break

        elapsed = time.perf_counter() - start
        if not success:
            logger.warning(
                "Fetching %d dependency reports failed after %.2fs", len(artifacts), elapsed
            )
            return False
        total_kb = sum(artifact.length for artifact in artifacts) // 1024
        logger.info(
            "Fetched %d dependency reports (%dkB) in %.2fs",
            len(artifacts),
            total_kb,
            elapsed,
        )
        return True
