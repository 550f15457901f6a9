"""AST node definitions for protobuf (.proto) files."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ProtoField:
    """A field declaration: [label] Type name = number [options];"""

    type_name: str
    field_name: str
    field_number: int
    label: Optional[str] = None
    is_map: bool = False
    map_key_type: Optional[str] = None
    options: Dict[str, Any] = field(default_factory=dict)
    oneof_name: Optional[str] = None

    @property
    def is_repeated(self) -> bool:
        return self.label == "repeated"


@dataclass
class ProtoOneOf:
    """A oneof block; its member fields are also listed on the message."""

    name: str
    field_names: List[str] = field(default_factory=list)


@dataclass
class ProtoEnum:
    name: str
    values: List[str] = field(default_factory=list)


@dataclass
class ProtoMessage:
    """A message definition, possibly containing nested messages and enums."""

    name: str
    fields: List[ProtoField] = field(default_factory=list)
    oneofs: List[ProtoOneOf] = field(default_factory=list)
    nested_messages: List[ProtoMessage] = field(default_factory=list)
    nested_enums: List[ProtoEnum] = field(default_factory=list)
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ProtoFile:
    """Top-level parsed representation of a .proto file."""

    package: str = ""
    syntax: str = "proto3"
    imports: List[str] = field(default_factory=list)
    messages: List[ProtoMessage] = field(default_factory=list)
    enums: List[ProtoEnum] = field(default_factory=list)
