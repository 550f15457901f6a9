"""Transform proto AST nodes into the linked Message/Field/Enum type graph."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple, Union

from protoc_docschema.models import Enum, Field, Message, OneOf

from .proto_ast import ProtoEnum, ProtoFile, ProtoMessage

logger = logging.getLogger(__name__)

# Proto scalar types — any field type not in this set is a type reference.
PROTO_PRIMITIVES = {
    "int32", "sint32", "sfixed32", "uint32", "fixed32",
    "int64", "sint64", "sfixed64", "uint64", "fixed64",
    "float", "double", "bool", "string", "bytes",
}

TypeNode = Union[Message, Enum]


def _qualify(scope: str, name: str) -> str:
    return f"{scope}.{name}" if scope else name


def transform_protos(files: Iterable[Tuple[ProtoFile, str]]) -> Dict[str, TypeNode]:
    """Transform parsed files into a table of types keyed by full name.

    All files share one namespace, so a message in one file may reference a
    type declared in another (imports). Declarations are collected first and
    field references are linked afterwards, which lets types refer to each
    other in any order, including cyclically.
    """
    types: Dict[str, TypeNode] = {}
    pending: List[Tuple[Field, str]] = []

    for ast, source_file in files:
        for enum_node in ast.enums:
            _declare_enum(enum_node, ast.package, types)
        for msg_node in ast.messages:
            _declare_message(msg_node, ast.package, source_file, types, pending)

    for field, scope in pending:
        if field.type_name in PROTO_PRIMITIVES:
            continue
        field.resolved_type = resolve_type_name(field.type_name, scope, types)
        if field.resolved_type is None:
            logger.debug("Type %s referenced from %s is not declared", field.type_name, scope)

    return types


def resolve_type_name(
    type_name: str,
    scope: str,
    types: Dict[str, TypeNode],
) -> Optional[TypeNode]:
    """Resolve a type reference using protobuf scoping rules.

    ``.pkg.Foo`` is fully qualified. Otherwise the innermost enclosing scope
    is searched first, then each enclosing scope outwards.
    """
    if type_name.startswith("."):
        return types.get(type_name[1:])

    parts = scope.split(".") if scope else []
    for i in range(len(parts), -1, -1):
        candidate = ".".join(parts[:i] + [type_name])
        if candidate in types:
            return types[candidate]
    return None


def _declare_enum(node: ProtoEnum, scope: str, types: Dict[str, TypeNode]) -> Enum:
    full_name = _qualify(scope, node.name)
    enum = Enum(name=node.name, full_name=full_name, values=list(node.values))
    types[full_name] = enum
    return enum


def _declare_message(
    node: ProtoMessage,
    scope: str,
    source_file: str,
    types: Dict[str, TypeNode],
    pending: List[Tuple[Field, str]],
) -> Message:
    """Declare a message and, recursively, its nested messages and enums."""
    full_name = _qualify(scope, node.name)

    fields: List[Field] = []
    for index, f in enumerate(node.fields):
        field = Field(
            name=f.field_name,
            type_name=f.type_name,
            index=index,
            is_repeated=f.is_repeated,
            is_map=f.is_map,
            is_required=f.label == "required",
            options=dict(f.options),
        )
        fields.append(field)
        pending.append((field, full_name))

    msg = Message(
        name=node.name,
        full_name=full_name,
        fields=fields,
        oneofs=[OneOf(name=o.name, fields=list(o.field_names)) for o in node.oneofs],
        options=dict(node.options),
        source_file=source_file,
    )
    types[full_name] = msg

    for enum_node in node.nested_enums:
        _declare_enum(enum_node, full_name, types)
    for nested_node in node.nested_messages:
        _declare_message(nested_node, full_name, source_file, types, pending)

    return msg
