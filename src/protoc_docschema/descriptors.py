"""Document schema descriptors produced by translation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Union

from protoc_docschema.hooks import DateRangeValidator, OneOfRule
from protoc_docschema.type_mapper import TypeCategory

# Leaf flags serialized when truthy, in this order.
_FLAG_NAMES = ("required", "unique", "lowercase", "uppercase", "trim")


@dataclass
class FieldDescriptor:
    type: TypeCategory
    required: bool = False
    unique: bool = False
    lowercase: bool = False
    uppercase: bool = False
    trim: bool = False
    min: Optional[Any] = None
    max: Optional[Any] = None
    enum: Optional[List[str]] = None
    ref: Optional[str] = None
    validators: List[DateRangeValidator] = field(default_factory=list)
    # Set on oneof discriminators, which are computed rather than stored.
    projected_from: Optional[OneOfRule] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": self.type.value}
        for name in _FLAG_NAMES:
            if getattr(self, name):
                out[name] = True
        for name in ("min", "max", "ref"):
            if getattr(self, name) is not None:
                out[name] = getattr(self, name)
        if self.enum is not None:
            out["enum"] = list(self.enum)
        if self.validators:
            out["validators"] = [v.to_dict() for v in self.validators]
        if self.projected_from is not None:
            out["projectedFrom"] = list(self.projected_from.member_paths)
        return out


@dataclass
class ArrayDescriptor:
    item: Descriptor

    def to_dict(self, _stack: Optional[List[MessageDescriptor]] = None) -> Dict[str, Any]:
        return {"type": [_to_dict(self.item, _stack or [])], "default": None}


@dataclass(eq=False)
class MessageDescriptor:
    """The descriptor of one message type: field name -> descriptor.

    There is exactly one per message per translation, shared by every field
    that references the message, so the object graph may contain cycles.
    """

    name: str
    fields: Dict[str, Descriptor] = field(default_factory=dict)

    def __getitem__(self, name: str) -> Descriptor:
        return self.fields[name]

    def __contains__(self, name: object) -> bool:
        return name in self.fields

    def __iter__(self) -> Iterator[str]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def get_path(self, path: str) -> Descriptor:
        """Follow a dotted path through nested (and array) descriptors."""
        node: Descriptor = self
        for part in path.split("."):
            while isinstance(node, ArrayDescriptor):
                node = node.item
            if not isinstance(node, MessageDescriptor):
                raise KeyError(path)
            node = node.fields[part]
        return node

    def to_dict(self, _stack: Optional[List[MessageDescriptor]] = None) -> Dict[str, Any]:
        """Serialize to plain data; a message already being serialized
        higher up the tree becomes ``{"$ref": name}``."""
        stack = (_stack or []) + [self]
        return {name: _to_dict(desc, stack) for name, desc in self.fields.items()}

    def __repr__(self) -> str:
        return f"MessageDescriptor({self.name!r}, fields={list(self.fields)})"


Descriptor = Union[FieldDescriptor, ArrayDescriptor, MessageDescriptor]


def _to_dict(desc: Descriptor, stack: List[MessageDescriptor]) -> Dict[str, Any]:
    if isinstance(desc, MessageDescriptor):
        if any(desc is seen for seen in stack):
            return {"$ref": desc.name}
        return desc.to_dict(stack)
    if isinstance(desc, ArrayDescriptor):
        return desc.to_dict(stack)
    return desc.to_dict()
