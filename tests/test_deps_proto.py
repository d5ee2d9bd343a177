"""Tests for the dependency report codec."""

import io

import pytest
from google.protobuf.message import DecodeError

from dependency_reports.deps_proto import (
    Dependencies,
    decode_dependencies,
    encode_dependencies,
    is_relevant,
)
from dependency_reports.models import DependencyKind, DependencyRecord


def test_decode_preserves_order_and_kinds(make_records):
    payload = encode_dependencies(
        make_records(
            ("x.jar", "EXPLICIT"),
            ("y.jar", "OTHER"),
            ("z.jar", "IMPLICIT"),
            ("u.jar", "UNUSED"),
        ),
        rule_label="//java/com/foo:bar",
    )

    decoded = decode_dependencies(io.BytesIO(payload))

    assert [(r.path, r.kind) for r in decoded] == [
        ("x.jar", DependencyKind.EXPLICIT),
        ("y.jar", DependencyKind.OTHER),
        ("z.jar", DependencyKind.IMPLICIT),
        ("u.jar", DependencyKind.UNUSED),
    ]


def test_missing_kind_is_treated_as_other():
    message = Dependencies()
    message.dependency.add(path="no-kind.jar")
    message.dependency.add(path="incomplete.jar", kind=3)

    decoded = decode_dependencies(io.BytesIO(message.SerializeToString()))

    assert [r.kind for r in decoded] == [DependencyKind.OTHER, DependencyKind.OTHER]


def test_empty_report_decodes_to_nothing():
    assert decode_dependencies(io.BytesIO(b"")) == []


def test_truncated_report_raises_decode_error():
    with pytest.raises(DecodeError):
        decode_dependencies(io.BytesIO(b"\x0a\x05ab"))


def test_relevance_filter():
    assert is_relevant(DependencyRecord("a.jar", DependencyKind.EXPLICIT))
    assert is_relevant(DependencyRecord("a.jar", DependencyKind.IMPLICIT))
    assert not is_relevant(DependencyRecord("a.jar", DependencyKind.UNUSED))
    assert not is_relevant(DependencyRecord("a.jar", DependencyKind.OTHER))
