"""
Local and remote dependency report artifacts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Dict, Optional, Union

from .models import ArtifactFingerprint, TargetInfo


logger = logging.getLogger(__name__)

REMOTE_SCHEMES = ("http://", "https://")


@dataclass(frozen=True)
class LocalArtifact:
    """A report that already exists on the local filesystem."""

    path: Path
    size: int
    mtime_ns: int

    @classmethod
    def from_path(cls, path: Path) -> "LocalArtifact":
        stat = path.stat()
        return cls(path=path, size=stat.st_size, mtime_ns=stat.st_mtime_ns)

    @property
    def key(self) -> str:
        return self.path.as_posix()

    @property
    def length(self) -> int:
        return self.size

    def to_fingerprint(self) -> ArtifactFingerprint:
        return ArtifactFingerprint(key=self.key, fingerprint=f"{self.mtime_ns}:{self.size}")

    def open_stream(self) -> BinaryIO:
        return self.path.open("rb")


@dataclass(frozen=True)
class RemoteArtifact:
    """A report served over HTTP and read from its locally cached copy."""

    uri: str
    digest: str
    length: int
    cache_path: Path

    @property
    def key(self) -> str:
        return self.uri

    def to_fingerprint(self) -> ArtifactFingerprint:
        return ArtifactFingerprint(key=self.key, fingerprint=self.digest)

    def open_stream(self) -> BinaryIO:
        return self.cache_path.open("rb")


ReportArtifact = Union[LocalArtifact, RemoteArtifact]


class ArtifactLocationResolver:
    """Turn declared report references into concrete artifacts."""

    def __init__(
        self,
        workspace_root: Path,
        cache_dir: Optional[Path] = None,
        remote_digests: Optional[Dict[str, str]] = None,
        remote_lengths: Optional[Dict[str, int]] = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            workspace_root: Directory that relative report paths are anchored at
            cache_dir: Directory holding downloaded copies of remote reports
            remote_digests: Content digest for each remote report URI
            remote_lengths: Byte length for each remote report URI, when known
        """
        self.workspace_root = Path(workspace_root)
        self.cache_dir = Path(cache_dir) if cache_dir is not None else self.workspace_root / ".report-cache"
        self.remote_digests = dict(remote_digests or {})
        self.remote_lengths = dict(remote_lengths or {})

    def resolve(self, target: TargetInfo) -> Optional[ReportArtifact]:
        reference = target.report
        if not reference:
            return None
        if reference.startswith(REMOTE_SCHEMES):
            return self._resolve_remote(reference)
        return self._resolve_local(target, reference)

    def _resolve_local(self, target: TargetInfo, reference: str) -> Optional[LocalArtifact]:
        path = Path(reference)
        if not path.is_absolute():
            path = self.workspace_root / path
        try:
            return LocalArtifact.from_path(path)
        except FileNotFoundError:
            logger.debug("No dependency report on disk for %s: %s", target.key, path)
            return None

    def _resolve_remote(self, uri: str) -> RemoteArtifact:
        digest = self.remote_digests.get(uri)
        if not digest:
            raise ValueError(f"Remote dependency report has no digest: {uri}")
        return RemoteArtifact(
            uri=uri,
            digest=digest,
            length=self.remote_lengths.get(uri, 0),
            cache_path=self.cache_dir / digest,
        )
