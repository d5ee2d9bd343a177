"""
Persistent loader state and the merge that rebuilds it on every run.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import AbstractSet, Dict, FrozenSet, List, Optional, Sequence, Tuple

from packaging.version import InvalidVersion, Version

from .models import ArtifactFingerprint, DependencyEntry, ParseResult, TargetKey


logger = logging.getLogger(__name__)

STATE_FORMAT_VERSION = Version("1.0")


@dataclass(frozen=True)
class DependencyState:
    """Ordered dependency entries carried from one run to the next."""

    entries: Tuple[DependencyEntry, ...] = ()

    @classmethod
    def merge(
        cls,
        prior: Optional["DependencyState"],
        updated: AbstractSet[ArtifactFingerprint],
        removed: AbstractSet[ArtifactFingerprint],
        results: Sequence[Optional[ParseResult]],
    ) -> "DependencyState":
        """Derive the next state from the prior one and this run's changes.

        Entries backed by an updated or removed artifact are dropped first,
        then every successful parse result is appended. A fresh result also
        replaces any retained entry for the same target.

        Args:
            prior: State of the last successful run, or None
            updated: Fingerprints of the artifacts that were re-read this run
            removed: Stored fingerprints whose artifacts are no longer required
            results: Parse results, None where a report could not be used

        Returns:
            The rebuilt state
        """
        stale_keys = {record.key for record in updated}
        stale_keys.update(record.key for record in removed)
        fresh = [result for result in results if result is not None]
        fresh_targets = {result.target for result in fresh}

        entries: List[DependencyEntry] = []
        if prior is not None:
            entries.extend(prior.entries)
        entries = [
            entry
            for entry in entries
            if entry.artifact.key not in stale_keys and entry.target not in fresh_targets
        ]
        for result in fresh:
            entries.append(
                DependencyEntry(
                    target=result.target,
                    dependencies=result.dependencies,
                    artifact=result.artifact,
                )
            )
        return cls(entries=tuple(entries))

    def artifact_fingerprints(self) -> FrozenSet[ArtifactFingerprint]:
        return frozenset(entry.artifact for entry in self.entries)

    def dependency_map(self) -> Dict[TargetKey, Tuple[str, ...]]:
        return {entry.target: entry.dependencies for entry in self.entries}

    def to_dict(self) -> Dict:
        return {
            "format_version": str(STATE_FORMAT_VERSION),
            "entries": [
                {
                    "target": entry.target.label,
                    "dependencies": list(entry.dependencies),
                    "artifact": {
                        "key": entry.artifact.key,
                        "fingerprint": entry.artifact.fingerprint,
                    },
                }
                for entry in self.entries
            ],
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "DependencyState":
        """Rebuild a state from ``to_dict`` output.

        Raises:
            ValueError: If the document is not a compatible state
        """
        raw_version = data.get("format_version")
        try:
            version = Version(str(raw_version))
        except InvalidVersion as e:
            raise ValueError(f"Invalid state format version: {raw_version!r}") from e
        if version.major != STATE_FORMAT_VERSION.major:
            raise ValueError(
                f"Unsupported state format version {version}, expected {STATE_FORMAT_VERSION}"
            )

        raw_entries = data.get("entries", [])
        if not isinstance(raw_entries, list):
            raise ValueError(f"State entries must be a list, got {type(raw_entries).__name__}")

        entries = []
        for item in raw_entries:
            try:
                artifact = item["artifact"]
                entries.append(
                    DependencyEntry(
                        target=TargetKey.parse(item["target"]),
                        dependencies=tuple(str(path) for path in item["dependencies"]),
                        artifact=ArtifactFingerprint(
                            key=str(artifact["key"]),
                            fingerprint=str(artifact["fingerprint"]),
                        ),
                    )
                )
            except (AttributeError, KeyError, TypeError) as e:
                raise ValueError(f"Malformed state entry: {item!r}") from e
        return cls(entries=tuple(entries))


class JsonStateStore:
    """Keep the state in a JSON file between runs."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> Optional[DependencyState]:
        if not self.path.exists():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("State document is not an object")
            return DependencyState.from_dict(data)
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning("Discarding unreadable state %s: %s", self.path, e)
            return None

    def save(self, state: DependencyState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(state.to_dict(), f, indent=2)
            f.write("\n")
        tmp.replace(self.path)
        logger.debug("Saved %d dependency entries to %s", len(state.entries), self.path)
