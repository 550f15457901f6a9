"""Mutually exclusive field groups.

Each group gets a discriminator descriptor under the group's own name and a
``OneOfRule`` that rejects documents with more than one member set. The
discriminator is projected when read (see ``OneOfRule.discriminator``) and is
never stored, so no save-time hook is generated.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Tuple

from protoc_docschema.descriptors import FieldDescriptor, MessageDescriptor
from protoc_docschema.hooks import OneOfRule
from protoc_docschema.models import Field, Message
from protoc_docschema.type_mapper import TypeCategory

logger = logging.getLogger(__name__)

# Field option naming the group a field belongs to. Needed for members that
# protobuf does not allow inside a ``oneof`` block, such as repeated fields.
ONEOF_MEMBER_DIRECTIVE = "oneOfMember"


def collect_groups(message: Message) -> List[Tuple[str, List[Field]]]:
    """Return ``(group name, members)`` pairs declared on ``message``.

    Groups come in declaration order, declared ``oneof`` blocks first.
    Members are ordered by field declaration order.
    """
    names: Dict[str, List[str]] = {}
    for oneof in message.oneofs:
        names.setdefault(oneof.name, []).extend(oneof.fields)
    for field in message.fields:
        group = field.options.get(ONEOF_MEMBER_DIRECTIVE)
        if isinstance(group, str) and group:
            members = names.setdefault(group, [])
            if field.name not in members:
                members.append(field.name)

    groups: List[Tuple[str, List[Field]]] = []
    for group, member_names in names.items():
        fields = [message.get_field(name) for name in member_names]
        members = sorted((f for f in fields if f is not None), key=lambda f: f.index)
        groups.append((group, members))
    return groups


class OneOfCoordinator:
    def __init__(self, rules: List[OneOfRule]):
        self._rules = rules

    def coordinate(self, message: Message, descriptor: MessageDescriptor, prefix: str) -> None:
        for group, members in collect_groups(message):
            rule = OneOfRule(
                group_path=f"{prefix}{group}",
                member_paths=tuple(f"{prefix}{f.name}" for f in members),
            )
            if group in descriptor.fields:
                logger.debug("Discriminator %s replaces the field of the same name", rule.group_path)
            descriptor.fields[group] = FieldDescriptor(
                type=TypeCategory.STRING,
                projected_from=rule,
            )
            self._rules.append(rule)
            logger.debug("OneOf %s over %s", rule.group_path, ", ".join(rule.member_paths))
