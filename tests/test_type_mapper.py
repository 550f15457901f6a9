import pytest

from protoc_docschema.type_mapper import SCALAR_TYPE_MAP, TypeCategory, map_scalar


class TestScalarMapping:
    @pytest.mark.parametrize("name", ["int64", "sint64", "fixed64", "sfixed64", "uint64"])
    def test_64_bit_integers_are_strings(self, name):
        assert map_scalar(name) is TypeCategory.STRING

    @pytest.mark.parametrize("name", ["int32", "sint32", "fixed32", "sfixed32", "uint32", "float", "double"])
    def test_32_bit_and_floating_point_are_numbers(self, name):
        assert map_scalar(name) is TypeCategory.NUMBER

    def test_other_scalars(self):
        assert map_scalar("bool") is TypeCategory.BOOLEAN
        assert map_scalar("string") is TypeCategory.STRING
        assert map_scalar("bytes") is TypeCategory.STRING
        assert map_scalar("enum") is TypeCategory.STRING

    def test_well_known_types(self):
        assert map_scalar("Timestamp") is TypeCategory.DATE
        assert map_scalar("Duration") is TypeCategory.STRING
        assert map_scalar("ObjectId") is TypeCategory.OBJECT_ID
        for name in ("Any", "Struct", "JSONObject"):
            assert map_scalar(name) is TypeCategory.OBJECT

    def test_qualified_well_known_names(self):
        assert map_scalar("google.protobuf.Timestamp") is TypeCategory.DATE
        assert map_scalar("google.protobuf.Struct") is TypeCategory.OBJECT

    def test_unmapped_names(self):
        assert map_scalar("Address") is None
        assert map_scalar("") is None

    def test_table_is_total_over_categories(self):
        assert set(SCALAR_TYPE_MAP.values()) == set(TypeCategory)

    @pytest.mark.parametrize("name, category", [
        ("google.protobuf.BoolValue", TypeCategory.BOOLEAN),
        ("google.protobuf.StringValue", TypeCategory.STRING),
        ("google.protobuf.BytesValue", TypeCategory.STRING),
        ("google.protobuf.Int64Value", TypeCategory.STRING),
        ("google.protobuf.UInt64Value", TypeCategory.STRING),
        ("google.protobuf.Int32Value", TypeCategory.NUMBER),
        ("google.protobuf.UInt32Value", TypeCategory.NUMBER),
        ("google.protobuf.FloatValue", TypeCategory.NUMBER),
        ("google.protobuf.DoubleValue", TypeCategory.NUMBER),
    ])
    def test_well_known_wrappers_follow_width_policy(self, name, category):
        assert map_scalar(name) is category
