"""Scalar and well-known type names -> document schema type categories."""

from __future__ import annotations

from enum import Enum
from typing import Dict, Optional

from protoc_docschema.models import short_name


class TypeCategory(Enum):
    BOOLEAN = "boolean"
    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    OBJECT = "object"
    OBJECT_ID = "objectId"


# 64-bit integers are strings so they survive a round trip through doubles.
SCALAR_TYPE_MAP: Dict[str, TypeCategory] = {
    "bool": TypeCategory.BOOLEAN,
    "string": TypeCategory.STRING,
    "bytes": TypeCategory.STRING,
    "int64": TypeCategory.STRING,
    "sint64": TypeCategory.STRING,
    "fixed64": TypeCategory.STRING,
    "sfixed64": TypeCategory.STRING,
    "uint64": TypeCategory.STRING,
    "enum": TypeCategory.STRING,
    "Duration": TypeCategory.STRING,
    "int32": TypeCategory.NUMBER,
    "sint32": TypeCategory.NUMBER,
    "fixed32": TypeCategory.NUMBER,
    "sfixed32": TypeCategory.NUMBER,
    "uint32": TypeCategory.NUMBER,
    "float": TypeCategory.NUMBER,
    "double": TypeCategory.NUMBER,
    # google/protobuf/wrappers.proto, never loaded from disk
    "BoolValue": TypeCategory.BOOLEAN,
    "StringValue": TypeCategory.STRING,
    "BytesValue": TypeCategory.STRING,
    "Int64Value": TypeCategory.STRING,
    "UInt64Value": TypeCategory.STRING,
    "Int32Value": TypeCategory.NUMBER,
    "UInt32Value": TypeCategory.NUMBER,
    "FloatValue": TypeCategory.NUMBER,
    "DoubleValue": TypeCategory.NUMBER,
    "Any": TypeCategory.OBJECT,
    "Struct": TypeCategory.OBJECT,
    "JSONObject": TypeCategory.OBJECT,
    "Timestamp": TypeCategory.DATE,
    "ObjectId": TypeCategory.OBJECT_ID,
}


def map_scalar(type_name: str) -> Optional[TypeCategory]:
    """Return the category for a scalar or well-known type name.

    ``None`` means the name is not a scalar and must resolve to a message.
    """
    return SCALAR_TYPE_MAP.get(short_name(type_name))
