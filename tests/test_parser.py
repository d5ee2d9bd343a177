"""Tests for concurrent report parsing."""

import io
import threading
from dataclasses import dataclass

import pytest

from dependency_reports.artifacts import LocalArtifact
from dependency_reports.cancellation import CancellationToken, OperationCancelled
from dependency_reports.models import ArtifactFingerprint, TargetKey
from dependency_reports.parser import ByteCounter, ReportParser


FOO = TargetKey.parse("//java/com/foo:foo")
BAR = TargetKey.parse("//java/com/bar:bar")


@dataclass(frozen=True)
class CancellingArtifact:
    """Artifact whose read cancels the run it belongs to."""

    key: str
    token: CancellationToken
    length: int = 0

    def to_fingerprint(self):
        return ArtifactFingerprint(key=self.key, fingerprint="x")

    def open_stream(self):
        self.token.cancel()
        return io.BytesIO(b"")


def test_parse_all_filters_irrelevant_kinds(write_report, executor):
    path = write_report(
        "foo.jdeps",
        [("x.jar", "EXPLICIT"), ("y.jar", "OTHER"), ("z.jar", "IMPLICIT"), ("u.jar", "UNUSED")],
    )
    artifact = LocalArtifact.from_path(path)
    parser = ReportParser(executor, CancellationToken())

    results = parser.parse_all([artifact], {artifact: FOO})

    assert len(results) == 1
    result = results[0]
    assert result.target == FOO
    assert result.dependencies == ("x.jar", "z.jar")
    assert result.artifact == artifact.to_fingerprint()
    assert parser.bytes_read.total == path.stat().st_size


def test_missing_and_malformed_reports_yield_none(write_report, executor, tmp_path):
    good = LocalArtifact.from_path(write_report("good.jdeps", [("a.jar", "EXPLICIT")]))
    vanished_path = write_report("vanished.jdeps", [("b.jar", "EXPLICIT")])
    vanished = LocalArtifact.from_path(vanished_path)
    vanished_path.unlink()
    malformed_path = tmp_path / "malformed.jdeps"
    malformed_path.write_bytes(b"\x0a\x05ab")
    malformed = LocalArtifact.from_path(malformed_path)
    parser = ReportParser(executor, CancellationToken())

    results = parser.parse_all(
        [good, vanished, malformed],
        {good: FOO, vanished: BAR, malformed: BAR},
    )

    assert results[1] is None
    assert results[2] is None
    assert results[0].dependencies == ("a.jar",)


def test_artifact_without_target_is_discarded(write_report, executor):
    artifact = LocalArtifact.from_path(write_report("orphan.jdeps", [("a.jar", "EXPLICIT")]))
    parser = ReportParser(executor, CancellationToken())

    assert parser.parse_all([artifact], {}) == [None]


def test_cancelled_token_aborts_before_submitting(write_report, executor):
    artifact = LocalArtifact.from_path(write_report("foo.jdeps", [("a.jar", "EXPLICIT")]))
    token = CancellationToken()
    token.cancel()
    parser = ReportParser(executor, token)

    with pytest.raises(OperationCancelled):
        parser.parse_all([artifact], {artifact: FOO})
    assert executor.submitted == 0


def test_cancellation_during_parse_discards_results(write_report, executor):
    token = CancellationToken()
    good = LocalArtifact.from_path(write_report("foo.jdeps", [("a.jar", "EXPLICIT")]))
    cancelling = CancellingArtifact(key="cancel.jdeps", token=token)
    parser = ReportParser(executor, token, poll_interval=0.01)

    with pytest.raises(OperationCancelled):
        parser.parse_all([good, cancelling], {good: FOO, cancelling: BAR})


def test_byte_counter_is_thread_safe():
    counter = ByteCounter()

    def add_many():
        for _ in range(1000):
            counter.add(3)

    threads = [threading.Thread(target=add_many) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert counter.total == 8 * 1000 * 3
