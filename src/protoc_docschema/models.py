from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


def short_name(name: str) -> str:
    """Return the last segment of a dotted type name."""
    return name.rsplit(".", 1)[-1]


@dataclass(eq=False)
class Enum:
    name: str
    full_name: str
    values: List[str] = field(default_factory=list)


@dataclass(eq=False)
class Field:
    name: str
    type_name: str
    index: int = 0
    is_repeated: bool = False
    is_map: bool = False
    is_required: bool = False
    options: Dict[str, Any] = field(default_factory=dict)
    resolved_type: Optional[Union[Message, Enum]] = None

    @property
    def is_enum(self) -> bool:
        return isinstance(self.resolved_type, Enum)

    @property
    def effective_type_name(self) -> str:
        """The name used for scalar lookup.

        Messages are looked up by their own short name, enums as ``enum``.
        """
        if isinstance(self.resolved_type, Message):
            return self.resolved_type.name
        if self.is_enum:
            return "enum"
        return short_name(self.type_name)


@dataclass(eq=False)
class OneOf:
    name: str
    fields: List[str] = field(default_factory=list)


@dataclass(eq=False)
class Message:
    """A message definition. Identity is by reference, never by value."""

    name: str
    full_name: str = ""
    fields: List[Field] = field(default_factory=list)
    oneofs: List[OneOf] = field(default_factory=list)
    options: Dict[str, Any] = field(default_factory=dict)
    source_file: str = ""

    def __post_init__(self):
        if not self.full_name:
            self.full_name = self.name

    def get_field(self, name: str) -> Optional[Field]:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def __repr__(self) -> str:
        return f"Message({self.full_name!r}, fields={[f.name for f in self.fields]})"
