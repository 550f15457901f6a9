from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from protoc_docschema.descriptors import MessageDescriptor
from protoc_docschema.hooks import OneOfRule
from protoc_docschema.models import Message
from protoc_docschema.parser.proto_parser import load_proto_files
from protoc_docschema.walker import MessageWalker

logger = logging.getLogger(__name__)

# Case- and accent-insensitive ordering, applied to every generated schema.
DEFAULT_COLLATION: Dict[str, Any] = {"locale": "en", "strength": 1}

HOOK_EVENTS = ("validate", "save")


@dataclass
class SchemaOptions:
    # False suppresses the store's automatic identity field.
    id: bool = False
    collation: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_COLLATION))

    def to_dict(self) -> Dict[str, Any]:
        return {"_id": self.id, "collation": dict(self.collation)}


@dataclass(eq=False)
class Schema:
    root: MessageDescriptor
    options: SchemaOptions = field(default_factory=SchemaOptions)
    pre_validate: List[Callable[..., Any]] = field(default_factory=list)
    pre_save: List[Callable[..., Any]] = field(default_factory=list)
    # Projected discriminators: full group path -> rule.
    virtuals: Dict[str, OneOfRule] = field(default_factory=dict)

    def pre(self, event: str, hook: Callable[..., Any]) -> None:
        """Register a hook to run before ``event`` ("validate" or "save")."""
        if event == "validate":
            self.pre_validate.append(hook)
        elif event == "save":
            self.pre_save.append(hook)
        else:
            raise ValueError(f"Unknown hook event {event!r}; expected one of {HOOK_EVENTS}")

    def discriminator(self, document: Any, group_path: str) -> Optional[str]:
        """Read a oneof discriminator from ``document``."""
        return self.virtuals[group_path].discriminator(document)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.root.name,
            "fields": self.root.to_dict(),
            "options": self.options.to_dict(),
            "preValidate": [h.to_dict() for h in self.pre_validate if isinstance(h, OneOfRule)],
            "preSave": [h.to_dict() for h in self.pre_save if isinstance(h, OneOfRule)],
        }


def build_schema(message: Message, options: Optional[SchemaOptions] = None) -> Schema:
    """Translate ``message`` and everything it reaches into a Schema."""
    walker = MessageWalker()
    root = walker.translate(message, "")

    schema = Schema(root=root, options=options or SchemaOptions())
    for rule in walker.oneof_rules:
        schema.pre("validate", rule)
        schema.virtuals[rule.group_path] = rule
    logger.debug(
        "Built schema %s with %d pre-validate hook(s)",
        message.full_name,
        len(schema.pre_validate),
    )
    return schema


def schema_from_proto(
    file_path: str,
    message_name: str,
    include_paths: Sequence[str] = (),
    options: Optional[SchemaOptions] = None,
) -> Schema:
    """Load a .proto file and build the schema for ``message_name``."""
    logger.debug("Generating schema from %s", file_path)
    registry = load_proto_files([file_path], include_paths)
    return build_schema(registry.lookup(message_name), options)
