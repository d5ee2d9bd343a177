"""
Read-only view from target to its resolved compile-time dependencies.
"""

from __future__ import annotations

from typing import Dict, Iterator, Mapping, Optional, Tuple

import pandas as pd

from .models import TargetKey
from .state import DependencyState


class DependencyLookup(Mapping[TargetKey, Tuple[str, ...]]):
    """Immutable snapshot of the dependencies published by one successful run."""

    def __init__(self, dependencies: Mapping[TargetKey, Tuple[str, ...]]) -> None:
        self._dependencies: Dict[TargetKey, Tuple[str, ...]] = dict(dependencies)

    @classmethod
    def from_state(cls, state: DependencyState) -> "DependencyLookup":
        return cls(state.dependency_map())

    def lookup(self, target: TargetKey) -> Optional[Tuple[str, ...]]:
        return self._dependencies.get(target)

    def __getitem__(self, target: TargetKey) -> Tuple[str, ...]:
        return self._dependencies[target]

    def __iter__(self) -> Iterator[TargetKey]:
        return iter(self._dependencies)

    def __len__(self) -> int:
        return len(self._dependencies)

    def to_frame(self) -> pd.DataFrame:
        """Flatten the view into one row per (target, dependency) pair."""
        rows = [
            {"target": target.label, "position": position, "dependency": path}
            for target in sorted(self._dependencies)
            for position, path in enumerate(self._dependencies[target])
        ]
        return pd.DataFrame(rows, columns=["target", "position", "dependency"])
