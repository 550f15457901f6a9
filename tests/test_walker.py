import pytest

from protoc_docschema.descriptors import ArrayDescriptor, FieldDescriptor, MessageDescriptor
from protoc_docschema.hooks import DateRangeValidator
from protoc_docschema.models import Field, Message, OneOf
from protoc_docschema.parser.proto_parser import ProtoRegistry, parse_proto_text
from protoc_docschema.parser.proto_transform import transform_protos
from protoc_docschema.type_mapper import TypeCategory
from protoc_docschema.walker import MessageWalker, UnresolvableTypeError


def _registry(proto: str) -> ProtoRegistry:
    return ProtoRegistry(transform_protos([(parse_proto_text(proto), "test.proto")]))


def _translate(proto: str, root: str) -> MessageDescriptor:
    return MessageWalker().translate(_registry(proto).lookup(root))


class TestScalarFields:
    def test_contact_with_nested_address(self):
        result = _translate("""\
message Contact {
    string name = 1 [(required) = true];
    Address address = 2;
}
message Address {
    string city = 1;
    string zip = 2;
}
""", "Contact")

        assert result["name"] == FieldDescriptor(type=TypeCategory.STRING, required=True)
        assert isinstance(result["address"], MessageDescriptor)
        assert result.get_path("address.city") == FieldDescriptor(type=TypeCategory.STRING)
        assert result.get_path("address.zip") == FieldDescriptor(type=TypeCategory.STRING)

    def test_field_order_follows_declaration(self):
        result = _translate("message M { int32 b = 2; string a = 1; bool c = 3; }", "M")
        assert list(result) == ["b", "a", "c"]

    def test_enum_values_attached(self):
        result = _translate("""\
message Ticket {
    Priority priority = 1;
    enum Priority { LOW = 0; HIGH = 1; URGENT = 2; }
}
""", "Ticket")
        assert result["priority"].type is TypeCategory.STRING
        assert result["priority"].enum == ["LOW", "HIGH", "URGENT"]

    def test_timestamp_gets_date_range_validator(self):
        result = _translate("message Event { google.protobuf.Timestamp at = 1; }", "Event")
        assert result["at"].type is TypeCategory.DATE
        assert result["at"].validators == [DateRangeValidator()]

    def test_non_date_fields_have_no_validators(self):
        result = _translate("message Event { string name = 1; }", "Event")
        assert result["name"].validators == []


class TestDirectives:
    def test_object_id_with_ref(self):
        result = _translate("""\
message Order {
    string customer = 1 [(objectId) = "Customer"];
    string anything = 2 [(objectId) = ""];
    ObjectId direct = 3;
}
""", "Order")
        assert result["customer"].type is TypeCategory.OBJECT_ID
        assert result["customer"].ref == "Customer"
        assert result["anything"].type is TypeCategory.OBJECT_ID
        assert result["anything"].ref is None
        assert result["direct"].type is TypeCategory.OBJECT_ID

    def test_shape_flags_and_bounds(self):
        result = _translate("""\
message User {
    string email = 1 [(lowercase) = true, (trim) = true, (unique) = true];
    string code = 2 [(uppercase) = true];
    int32 age = 3 [(min) = 0, (max) = 150];
}
""", "User")
        email = result["email"]
        assert (email.lowercase, email.trim, email.unique, email.uppercase) == (True, True, True, False)
        assert result["code"].uppercase is True
        assert (result["age"].min, result["age"].max) == (0, 150)

    def test_unknown_directives_are_ignored(self):
        result = _translate("message M { string a = 1 [(colour) = \"red\", deprecated = true]; }", "M")
        assert result["a"] == FieldDescriptor(type=TypeCategory.STRING)

    def test_virtual_fields_are_skipped(self):
        result = _translate("message M { string a = 1; string full = 2 [(virtual) = true]; }", "M")
        assert "full" not in result

    def test_proto2_required_label(self):
        result = _translate('syntax = "proto2"; message M { required string a = 1; optional string b = 2; }', "M")
        assert result["a"].required is True
        assert result["b"].required is False

    def test_message_level_required(self):
        result = _translate("""\
message Strict {
    option (required) = true;
    string a = 1;
    int32 b = 2;
}
""", "Strict")
        assert result["a"].required is True
        assert result["b"].required is True


class TestIdentityField:
    PROTO = """\
message Root {
    string _id = 1;
    string name = 2;
    Child child = 3;
    repeated Item items = 4;
}
message Child { string _id = 1; string label = 2; }
message Item { string _id = 1; int32 qty = 2; }
"""

    def test_skipped_at_root(self):
        assert "_id" not in _translate(self.PROTO, "Root")

    def test_skipped_on_single_nested_message(self):
        assert "_id" not in _translate(self.PROTO, "Root")["child"]

    def test_kept_on_repeated_subdocuments(self):
        items = _translate(self.PROTO, "Root")["items"]
        assert isinstance(items, ArrayDescriptor)
        assert items.item["_id"] == FieldDescriptor(type=TypeCategory.STRING)


class TestRepeatedAndMaps:
    def test_repeated_scalar_wraps_plain_descriptor(self):
        result = _translate("message M { string one = 1; repeated string many = 2; }", "M")
        assert isinstance(result["many"], ArrayDescriptor)
        assert result["many"].item == result["one"]

    def test_repeated_message_wraps_the_same_descriptor(self):
        result = _translate("""\
message Order { Line first = 1; repeated Line lines = 2; }
message Line { int32 qty = 1; }
""", "Order")
        assert result["lines"].item is result["first"]

    @pytest.mark.parametrize("value_type", ["string", "int32", "Address", "Color"])
    def test_map_is_always_generic_object(self, value_type):
        result = _translate(f"""\
message Tags {{ map<string, {value_type}> labels = 1; }}
message Address {{ string city = 1; }}
enum Color {{ RED = 0; }}
""", "Tags")
        assert result["labels"] == FieldDescriptor(type=TypeCategory.OBJECT)

    def test_map_with_unknown_value_type_is_not_fatal(self):
        result = _translate("message Tags { map<string, Nowhere> labels = 1; }", "Tags")
        assert result["labels"].type is TypeCategory.OBJECT


class TestWrappers:
    PROTO = """\
message StringValue { string value = 1; }
message TagsArray { repeated string value = 1; }
message LabelsMap { map<string, string> value = 1; }
message Profile {
    StringValue nickname = 1;
    string plain = 2;
    TagsArray tags = 3;
    repeated string plain_tags = 4;
    LabelsMap labels = 5;
}
"""

    def test_scalar_wrapper_is_transparent(self):
        result = _translate(self.PROTO, "Profile")
        assert result["nickname"] == result["plain"]

    def test_array_wrapper_is_transparent(self):
        result = _translate(self.PROTO, "Profile")
        assert result["tags"] == result["plain_tags"]

    def test_map_wrapper_is_generic_object(self):
        assert _translate(self.PROTO, "Profile")["labels"].type is TypeCategory.OBJECT


    def test_well_known_wrappers_map_like_their_scalars(self):
        result = _translate("""\
syntax = "proto3";
import "google/protobuf/wrappers.proto";
message Profile {
    google.protobuf.StringValue nickname = 1;
    string plain = 2;
    google.protobuf.Int64Value visits = 3;
    google.protobuf.Int32Value age = 4;
    google.protobuf.BoolValue active = 5;
}
""", "Profile")
        assert result["nickname"] == result["plain"]
        assert result["visits"].type is TypeCategory.STRING
        assert result["age"].type is TypeCategory.NUMBER
        assert result["active"].type is TypeCategory.BOOLEAN

    def test_outer_directives_apply_to_unwrapped_value(self):
        result = _translate("""\
message StringValue { string value = 1; }
message M { StringValue code = 1 [(uppercase) = true]; }
""", "M")
        assert result["code"] == FieldDescriptor(type=TypeCategory.STRING, uppercase=True)


class TestMemoization:
    def test_same_message_translates_to_same_object(self):
        result = _translate("""\
message Shipment { Address origin = 1; Address destination = 2; }
message Address { string city = 1; }
""", "Shipment")
        assert result["origin"] is result["destination"]

    def test_translate_twice_on_one_walker(self):
        registry = _registry("message A { string x = 1; }")
        walker = MessageWalker()
        first = walker.translate(registry.lookup("A"))
        assert walker.translate(registry.lookup("A")) is first

    def test_separate_walkers_do_not_share(self):
        registry = _registry("message A { string x = 1; }")
        a = registry.lookup("A")
        assert MessageWalker().translate(a) is not MessageWalker().translate(a)

    def test_identity_not_structure(self):
        first = Message(name="Twin", fields=[Field(name="x", type_name="string")])
        second = Message(name="Twin", fields=[Field(name="x", type_name="string")])
        root = Message(name="Root", fields=[
            Field(name="a", type_name="Twin", resolved_type=first),
            Field(name="b", type_name="Twin", resolved_type=second),
        ])
        result = MessageWalker().translate(root)
        assert result["a"] is not result["b"]


class TestCycles:
    def test_mutual_recursion_terminates(self):
        registry = _registry("""\
message A { string name = 1; B b = 2; }
message B { int32 n = 1; A a = 2; }
""")
        result = MessageWalker().translate(registry.lookup("A"))
        assert result["b"]["a"] is result
        assert result.get_path("b.a.b.n") == FieldDescriptor(type=TypeCategory.NUMBER)

    def test_self_recursion_through_repeated_field(self):
        result = _translate("message Node { string label = 1; repeated Node children = 2; }", "Node")
        assert result["children"].item is result

    def test_serialized_cycle_becomes_reference(self):
        result = _translate("message Node { string label = 1; Node parent = 2; }", "Node")
        assert result.to_dict() == {
            "label": {"type": "string"},
            "parent": {"$ref": "Node"},
        }


class TestUnresolvableTypes:
    def test_unknown_type_is_fatal(self):
        with pytest.raises(UnresolvableTypeError, match="Can't find the type Ghost"):
            _translate("message M { string ok = 1; Ghost g = 2; }", "M")

    def test_unknown_type_deep_in_graph(self):
        with pytest.raises(UnresolvableTypeError) as exc_info:
            _translate("""\
message Outer { Inner inner = 1; }
message Inner { Missing m = 1; }
""", "Outer")
        assert exc_info.value.path == "inner.m"
        assert exc_info.value.type_name == "Missing"

    def test_failed_translation_leaves_walker_clean(self):
        inner = Message(
            name="Inner",
            fields=[Field(name="email", type_name="string", index=0),
                    Field(name="phone", type_name="string", index=1)],
            oneofs=[OneOf(name="contactMethod", fields=["email", "phone"])],
        )
        ghost = Field(name="g", type_name="Ghost", index=1)
        outer = Message(name="Outer", fields=[
            Field(name="inner", type_name="Inner", resolved_type=inner),
            ghost,
        ])
        walker = MessageWalker()
        for _ in range(2):
            with pytest.raises(UnresolvableTypeError):
                walker.translate(outer)
        assert walker.oneof_rules == []

        ghost.resolved_type = Message(name="Ghost", fields=[Field(name="x", type_name="string")])
        result = walker.translate(outer)
        assert result["g"]["x"] == FieldDescriptor(type=TypeCategory.STRING)
        assert "contactMethod" in result["inner"].fields
        assert [r.group_path for r in walker.oneof_rules] == ["inner.contactMethod"]
