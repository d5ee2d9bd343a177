"""
Change detection between stored fingerprints and the artifacts of this run.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Dict, FrozenSet, Iterable, Optional

from .artifacts import ReportArtifact
from .models import ArtifactFingerprint


@dataclass(frozen=True)
class ArtifactsDiff:
    """Required artifacts that must be (re)read and stored ones that are gone."""

    updated: FrozenSet[ReportArtifact]
    removed: FrozenSet[ArtifactFingerprint]

    @property
    def updated_fingerprints(self) -> FrozenSet[ArtifactFingerprint]:
        return frozenset(artifact.to_fingerprint() for artifact in self.updated)


def diff_artifacts(
    previous: Optional[Iterable[ArtifactFingerprint]],
    required: AbstractSet[ReportArtifact],
) -> ArtifactsDiff:
    """Partition required artifacts into updated ones and find removed records.

    Args:
        previous: Fingerprints stored by the last successful run, or None on
            the first run
        required: Artifacts needed by the targets of this run

    Returns:
        The updated artifacts and the removed fingerprint records
    """
    if previous is None:
        return ArtifactsDiff(updated=frozenset(required), removed=frozenset())

    previous_by_key: Dict[str, ArtifactFingerprint] = {}
    for record in previous:
        previous_by_key[record.key] = record

    updated = []
    required_keys = set()
    for artifact in required:
        fingerprint = artifact.to_fingerprint()
        required_keys.add(fingerprint.key)
        if previous_by_key.get(fingerprint.key) != fingerprint:
            updated.append(artifact)

    removed = [
        record for key, record in previous_by_key.items() if key not in required_keys
    ]
    return ArtifactsDiff(updated=frozenset(updated), removed=frozenset(removed))
