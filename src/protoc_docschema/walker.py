from __future__ import annotations

import logging
from typing import Dict, List, Optional

from protoc_docschema.descriptors import (
    ArrayDescriptor,
    Descriptor,
    FieldDescriptor,
    MessageDescriptor,
)
from protoc_docschema.hooks import DateRangeValidator, OneOfRule
from protoc_docschema.models import Enum, Field, Message
from protoc_docschema.oneof import OneOfCoordinator
from protoc_docschema.type_mapper import TypeCategory, map_scalar
from protoc_docschema.wrapper_resolver import resolve_shape

logger = logging.getLogger(__name__)

# The document store supplies this field itself.
ID_FIELD_NAME = "_id"

# Field options that become boolean flags on the descriptor.
FLAG_DIRECTIVES = ("unique", "lowercase", "uppercase", "trim")

# Field options whose value is copied onto the descriptor.
VALUE_DIRECTIVES = ("min", "max")


class SchemaTranslationError(Exception):
    """Raised when a message graph cannot be translated."""


class UnresolvableTypeError(SchemaTranslationError):
    """A field type is neither a known scalar nor a message."""

    def __init__(self, type_name: str, path: str):
        self.type_name = type_name
        self.path = path
        super().__init__(f"Can't find the type {type_name} (at {path})")


class MessageWalker:
    """Translates one root message graph into descriptors.

    A walker owns the memoization cache and the discovered hooks for a single
    translation; create a new one per root.
    """

    def __init__(self):
        self._completed: Dict[Message, MessageDescriptor] = {}
        self.oneof_rules: List[OneOfRule] = []
        self._coordinator = OneOfCoordinator(self.oneof_rules)

    def translate(
        self,
        message: Message,
        prefix: str = "",
        via_repeated: bool = False,
    ) -> MessageDescriptor:
        """Return the descriptor for ``message``; field paths start at ``prefix``.

        A message seen before returns the very same descriptor object. It is
        registered before its fields are walked, so self- and mutually
        recursive messages terminate. On failure every descriptor and rule
        added by this call is dropped again.
        """
        cached = self._completed.get(message)
        if cached is not None:
            return cached

        logger.debug("Translating message %s at %r", message.full_name, prefix)
        cached_before = len(self._completed)
        rules_before = len(self.oneof_rules)
        descriptor = MessageDescriptor(name=message.name)
        self._completed[message] = descriptor

        try:
            for field in message.fields:
                if field.options.get("virtual"):
                    continue
                if field.name == ID_FIELD_NAME and not (prefix and via_repeated):
                    continue
                descriptor.fields[field.name] = self._translate_field(message, field, prefix)

            self._coordinator.coordinate(message, descriptor, prefix)
        except SchemaTranslationError:
            # dicts keep insertion order, so this call's entries are the tail
            for added in list(self._completed)[cached_before:]:
                del self._completed[added]
            del self.oneof_rules[rules_before:]
            raise
        return descriptor

    def _translate_field(self, message: Message, field: Field, prefix: str) -> Descriptor:
        shape = resolve_shape(field)
        path = f"{prefix}{field.name}"

        if shape.is_map:
            category: Optional[TypeCategory] = TypeCategory.OBJECT
        else:
            category = map_scalar(shape.type_name)

        if category is None:
            if not isinstance(shape.resolved_type, Message):
                raise UnresolvableTypeError(shape.type_name, path)
            result: Descriptor = self.translate(
                shape.resolved_type, f"{path}.", shape.is_repeated
            )
        else:
            result = self._leaf(message, field, category, shape.resolved_type, path)

        if shape.is_repeated:
            result = ArrayDescriptor(item=result)
        return result

    def _leaf(
        self,
        message: Message,
        field: Field,
        category: TypeCategory,
        resolved_type: object,
        path: str,
    ) -> FieldDescriptor:
        leaf = FieldDescriptor(type=category)
        options = field.options

        if isinstance(resolved_type, Enum):
            leaf.enum = list(resolved_type.values)

        if "objectId" in options:
            leaf.type = TypeCategory.OBJECT_ID
            ref = options["objectId"]
            if isinstance(ref, str) and ref:
                leaf.ref = ref

        for name in FLAG_DIRECTIVES:
            if options.get(name):
                setattr(leaf, name, True)
        for name in VALUE_DIRECTIVES:
            value = options.get(name)
            if value is not None and not isinstance(value, bool):
                setattr(leaf, name, value)

        if leaf.type is TypeCategory.DATE:
            leaf.validators.append(DateRangeValidator())

        if field.is_required or options.get("required") or message.options.get("required"):
            leaf.required = True

        logger.debug("Field %s -> %s", path, leaf.type.value)
        return leaf
