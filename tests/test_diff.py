"""Tests for artifact change detection."""

from pathlib import Path

from dependency_reports.artifacts import LocalArtifact, RemoteArtifact
from dependency_reports.diff import diff_artifacts
from dependency_reports.models import ArtifactFingerprint


def _local(name: str, mtime_ns: int = 1, size: int = 10) -> LocalArtifact:
    return LocalArtifact(path=Path("/ws") / name, size=size, mtime_ns=mtime_ns)


def test_first_run_marks_everything_updated():
    required = {_local("a.jdeps"), _local("b.jdeps")}

    diff = diff_artifacts(None, required)

    assert diff.updated == frozenset(required)
    assert diff.removed == frozenset()


def test_unchanged_artifacts_are_not_updated():
    a = _local("a.jdeps")
    b = _local("b.jdeps")

    diff = diff_artifacts({a.to_fingerprint(), b.to_fingerprint()}, {a, b})

    assert diff.updated == frozenset()
    assert diff.removed == frozenset()


def test_changed_fingerprint_and_new_artifact_are_updated():
    old_a = _local("a.jdeps", mtime_ns=1)
    new_a = _local("a.jdeps", mtime_ns=2)
    b = _local("b.jdeps")
    c = _local("c.jdeps")

    diff = diff_artifacts({old_a.to_fingerprint(), b.to_fingerprint()}, {new_a, b, c})

    assert diff.updated == frozenset({new_a, c})
    assert diff.removed == frozenset()
    assert diff.updated_fingerprints == frozenset({new_a.to_fingerprint(), c.to_fingerprint()})


def test_missing_artifacts_are_removed():
    a = _local("a.jdeps")
    gone = ArtifactFingerprint(key="/ws/gone.jdeps", fingerprint="1:10")

    diff = diff_artifacts({a.to_fingerprint(), gone}, {a})

    assert diff.updated == frozenset()
    assert diff.removed == frozenset({gone})


def test_updated_and_unchanged_partition_required():
    a = _local("a.jdeps")
    b = _local("b.jdeps", mtime_ns=5)
    remote = RemoteArtifact(
        uri="https://cache.example.com/c.jdeps",
        digest="sha256-c",
        length=4,
        cache_path=Path("/cache/sha256-c"),
    )
    previous = {
        a.to_fingerprint(),
        ArtifactFingerprint(key=b.key, fingerprint="4:10"),
        ArtifactFingerprint(key="/ws/old.jdeps", fingerprint="1:1"),
    }
    required = {a, b, remote}

    diff = diff_artifacts(previous, required)
    unchanged = required - diff.updated

    assert diff.updated | unchanged == required
    assert not diff.updated & unchanged
    assert unchanged == {a}
    assert {record.key for record in diff.removed} == {"/ws/old.jdeps"}
