"""
Interfaces for the collaborators of the dependency report loader.
"""

from __future__ import annotations

from concurrent.futures import Future
from typing import TYPE_CHECKING, Collection, Optional, Protocol

from .artifacts import ReportArtifact
from .models import TargetInfo

if TYPE_CHECKING:
    from .state import DependencyState


class ArtifactResolver(Protocol):
    """Resolve a target's declared report into a concrete artifact."""

    def resolve(self, target: TargetInfo) -> Optional[ReportArtifact]:
        ...


class FetchService(Protocol):
    """Make artifact content locally readable ahead of parsing."""

    def prefetch(
        self,
        artifacts: Collection[ReportArtifact],
        priority: bool,
        blocking: bool,
    ) -> "Future[bool]":
        ...


class ProgressSink(Protocol):
    """Receive user-facing run summaries."""

    def report(self, message: str) -> None:
        ...


class StateStore(Protocol):
    """Keep the loader state between invocations."""

    def load(self) -> Optional["DependencyState"]:
        ...

    def save(self, state: "DependencyState") -> None:
        ...
