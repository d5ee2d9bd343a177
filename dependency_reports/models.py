"""
Core data models for dependency report loading.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Tuple

if TYPE_CHECKING:
    from .lookup import DependencyLookup
    from .state import DependencyState


@dataclass(frozen=True, order=True)
class TargetKey:
    """A build target identified by its package and name."""

    package: str
    name: str

    @property
    def label(self) -> str:
        return f"//{self.package}:{self.name}"

    @classmethod
    def parse(cls, label: str) -> "TargetKey":
        """Parse a label such as ``//java/com/foo:bar``.

        Args:
            label: Target label, with or without the leading ``//``

        Returns:
            The parsed target key

        Raises:
            ValueError: If the label is empty or malformed
        """
        text = label.strip()
        if text.startswith("//"):
            text = text[2:]
        if not text:
            raise ValueError(f"Invalid target label: {label!r}")
        package, sep, name = text.partition(":")
        if not sep:
            name = package.rsplit("/", 1)[-1]
        if not name or ":" in name:
            raise ValueError(f"Invalid target label: {label!r}")
        return cls(package=package, name=name)

    def __str__(self) -> str:
        return self.label


class DependencyKind(enum.Enum):
    """How the compiler used a dependency."""

    EXPLICIT = "explicit"
    IMPLICIT = "implicit"
    UNUSED = "unused"
    OTHER = "other"


@dataclass(frozen=True)
class DependencyRecord:
    """A single dependency entry decoded from a report."""

    path: str
    kind: DependencyKind


@dataclass(frozen=True)
class ArtifactFingerprint:
    """Persisted snapshot of an artifact's identity and content fingerprint."""

    key: str
    fingerprint: str


@dataclass(frozen=True)
class DependencyEntry:
    """Resolved dependencies of one target and the artifact they came from."""

    target: TargetKey
    dependencies: Tuple[str, ...]
    artifact: ArtifactFingerprint


@dataclass(frozen=True)
class ParseResult:
    """Output of parsing one updated report artifact."""

    artifact: ArtifactFingerprint
    target: TargetKey
    dependencies: Tuple[str, ...]


@dataclass(frozen=True)
class TargetInfo:
    """Target metadata as supplied by the caller."""

    key: TargetKey
    report: Optional[str] = None


class LoadStatus(enum.Enum):
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class LoadResult:
    """Outcome of a single loader invocation."""

    status: LoadStatus
    lookup: Optional["DependencyLookup"] = None
    state: Optional["DependencyState"] = None
    loaded_count: int = 0
    bytes_read: int = 0
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status is LoadStatus.SUCCESS
