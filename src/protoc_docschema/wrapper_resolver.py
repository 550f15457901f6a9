"""Presence wrappers: messages that exist only to carry a single value.

``StringValue``, ``TagsArray`` and ``LabelsMap`` style messages let a sender
distinguish "absent" from "default". In a document they are stored as the
carried value itself, so a field typed as a wrapper takes the shape of the
wrapper's ``value`` field instead.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Union

from protoc_docschema.models import Enum, Field, Message

WRAPPER_NAME_RE = re.compile(r"^(\w+)(Array|Value|Map)$")

WRAPPED_FIELD_NAME = "value"


@dataclass(frozen=True)
class FieldShape:
    type_name: str
    is_repeated: bool
    is_map: bool
    resolved_type: Optional[Union[Message, Enum]]

    @property
    def is_enum(self) -> bool:
        return isinstance(self.resolved_type, Enum)


def _shape_of(field: Field) -> FieldShape:
    return FieldShape(
        type_name=field.effective_type_name,
        is_repeated=field.is_repeated,
        is_map=field.is_map,
        resolved_type=field.resolved_type,
    )


def wrapped_field(message: Message) -> Optional[Field]:
    """Return the carried field of a wrapper message, or None if it is not one."""
    if not WRAPPER_NAME_RE.match(message.name):
        return None
    carried = message.get_field(WRAPPED_FIELD_NAME)
    if carried is None and len(message.fields) == 1:
        carried = message.fields[0]
    return carried


def resolve_shape(field: Field) -> FieldShape:
    """Return the effective shape of ``field``, unwrapping one wrapper level."""
    if isinstance(field.resolved_type, Message):
        carried = wrapped_field(field.resolved_type)
        if carried is not None:
            return _shape_of(carried)
    return _shape_of(field)
