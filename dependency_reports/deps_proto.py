"""
Protobuf codec for compiler dependency reports.

The message classes are assembled from a descriptor at import time so no
protoc step is needed; the schema is kept alongside in ``deps.proto``.
"""

from __future__ import annotations

from typing import BinaryIO, Iterable, List, Optional

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

from .models import DependencyKind, DependencyRecord


_PACKAGE = "blaze_deps"
_FieldProto = descriptor_pb2.FieldDescriptorProto

KIND_NUMBERS = {
    DependencyKind.EXPLICIT: 0,
    DependencyKind.IMPLICIT: 1,
    DependencyKind.UNUSED: 2,
}
_KINDS_BY_NUMBER = {number: kind for kind, number in KIND_NUMBERS.items()}
_INCOMPLETE = 3

RELEVANT_KINDS = frozenset({DependencyKind.EXPLICIT, DependencyKind.IMPLICIT})


def _add_field(message, name: str, number: int, field_type: int, label: int, type_name: str = "") -> None:
    field = message.field.add(name=name, number=number, type=field_type, label=label)
    if type_name:
        field.type_name = f".{_PACKAGE}.{type_name}"


def _build_file() -> descriptor_pb2.FileDescriptorProto:
    proto = descriptor_pb2.FileDescriptorProto(
        name="dependency_reports/deps.proto",
        package=_PACKAGE,
        syntax="proto2",
    )
    optional = _FieldProto.LABEL_OPTIONAL
    repeated = _FieldProto.LABEL_REPEATED

    location = proto.message_type.add(name="SourceLocation")
    _add_field(location, "path", 1, _FieldProto.TYPE_STRING, optional)
    _add_field(location, "line", 2, _FieldProto.TYPE_INT32, optional)
    _add_field(location, "column", 3, _FieldProto.TYPE_INT32, optional)

    dependency = proto.message_type.add(name="Dependency")
    kind = dependency.enum_type.add(name="Kind")
    for name, number in (("EXPLICIT", 0), ("IMPLICIT", 1), ("UNUSED", 2), ("INCOMPLETE", _INCOMPLETE)):
        kind.value.add(name=name, number=number)
    _add_field(dependency, "path", 1, _FieldProto.TYPE_STRING, optional)
    _add_field(dependency, "kind", 2, _FieldProto.TYPE_ENUM, optional, "Dependency.Kind")
    _add_field(dependency, "location", 3, _FieldProto.TYPE_MESSAGE, optional, "SourceLocation")

    dependencies = proto.message_type.add(name="Dependencies")
    _add_field(dependencies, "dependency", 1, _FieldProto.TYPE_MESSAGE, repeated, "Dependency")
    _add_field(dependencies, "rule_label", 2, _FieldProto.TYPE_STRING, optional)
    _add_field(dependencies, "success", 3, _FieldProto.TYPE_BOOL, optional)
    _add_field(dependencies, "contained_package", 4, _FieldProto.TYPE_STRING, repeated)
    _add_field(dependencies, "request_id", 5, _FieldProto.TYPE_INT64, optional)
    return proto


_POOL = descriptor_pool.DescriptorPool()
_POOL.AddSerializedFile(_build_file().SerializeToString())

Dependency = message_factory.GetMessageClass(_POOL.FindMessageTypeByName(f"{_PACKAGE}.Dependency"))
Dependencies = message_factory.GetMessageClass(_POOL.FindMessageTypeByName(f"{_PACKAGE}.Dependencies"))


def _kind_of(dependency) -> DependencyKind:
    # Unset, INCOMPLETE and unknown wire values are all treated as OTHER.
    if not dependency.HasField("kind"):
        return DependencyKind.OTHER
    return _KINDS_BY_NUMBER.get(dependency.kind, DependencyKind.OTHER)


def is_relevant(record: DependencyRecord) -> bool:
    """Keep only dependencies the compiler actually resolved and used."""
    return record.kind in RELEVANT_KINDS


def decode_dependencies(stream: BinaryIO) -> List[DependencyRecord]:
    """Decode a serialized ``Dependencies`` message.

    Args:
        stream: Binary stream positioned at the start of the report

    Returns:
        Every dependency in the report, in file order

    Raises:
        google.protobuf.message.DecodeError: If the bytes are not a valid report
    """
    message = Dependencies()
    message.ParseFromString(stream.read())
    return [
        DependencyRecord(path=dependency.path, kind=_kind_of(dependency))
        for dependency in message.dependency
    ]


def encode_dependencies(
    records: Iterable[DependencyRecord],
    rule_label: Optional[str] = None,
    success: bool = True,
) -> bytes:
    """Serialize records into the compiler's report format.

    OTHER records are written with the INCOMPLETE wire kind.
    """
    message = Dependencies(success=success)
    if rule_label is not None:
        message.rule_label = rule_label
    for record in records:
        message.dependency.add(
            path=record.path,
            kind=KIND_NUMBERS.get(record.kind, _INCOMPLETE),
        )
    return message.SerializeToString()
