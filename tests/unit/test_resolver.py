"""Tests for type resolution and literal validation."""

from pathlib import Path

import pytest

from msgbind.core import ir
from msgbind.core.errors import (
    CyclicTypeError,
    DuplicateFieldError,
    InvalidBoundError,
    InvalidDefaultError,
    UnresolvedTypeError,
)
from msgbind.core.parser import parse_schema_text
from msgbind.core.resolver import check_literal, resolve_schema


def make_schema(text: str, name: str = "Test", package: str = "demo", kind=ir.SchemaKind.MESSAGE):
    path = Path(f"{name}.{kind.value}")
    return ir.SchemaFile(
        package=package,
        name=name,
        kind=kind,
        path=path,
        blocks=parse_schema_text(text, path, kind),
    )


@pytest.fixture
def table(symbols):
    """Symbol table knowing demo/Test, demo/Point and geometry/Pose."""
    symbols.register_schema("demo", "Test", ir.SchemaKind.MESSAGE, Path("Test.msg"))
    symbols.register_schema("demo", "Point", ir.SchemaKind.MESSAGE, Path("Point.msg"))
    symbols.register_schema("geometry", "Pose", ir.SchemaKind.MESSAGE, Path("Pose.msg"))
    symbols.freeze()
    return symbols


def resolve_ok(table, text: str) -> ir.MessageSpec:
    spec, errors = resolve_schema(table, make_schema(text))
    assert errors == []
    return spec


def resolve_errors(table, text: str) -> list:
    spec, errors = resolve_schema(table, make_schema(text))
    assert spec is None
    return errors


class TestPrimitives:
    @pytest.mark.parametrize("kind", [k.value for k in ir.PrimitiveKind])
    def test_canonical_names(self, table, kind):
        spec = resolve_ok(table, f"{kind} v")
        assert spec.fields[0].type == ir.PrimitiveType(kind=ir.PrimitiveKind(kind))

    @pytest.mark.parametrize("alias", ["byte", "char"])
    def test_aliases_map_to_uint8(self, table, alias):
        spec = resolve_ok(table, f"{alias} v")
        assert spec.fields[0].type.kind == ir.PrimitiveKind.UINT8

    def test_text(self, table):
        spec = resolve_ok(table, "string a\nstring<=8 b")
        assert spec.fields[0].type == ir.TextType()
        assert spec.fields[1].type == ir.TextType(bound=8)

    def test_unknown_primitive(self, table):
        (error,) = resolve_errors(table, "int31 v")
        assert isinstance(error, UnresolvedTypeError)
        assert "Unknown primitive type 'int31'" in error.message
        assert error.line == 1


class TestContainers:
    def test_fixed_array(self, table):
        spec = resolve_ok(table, "int32[10] v")
        assert spec.fields[0].type == ir.FixedArrayType(
            element=ir.PrimitiveType(kind=ir.PrimitiveKind.INT32), length=10
        )

    def test_sequences(self, table):
        spec = resolve_ok(table, "float32[] a\nstring<=4[<=2] b")
        assert spec.fields[0].type.bound is None
        b = spec.fields[1].type
        assert isinstance(b, ir.SequenceType)
        assert b.bound == 2
        assert b.element == ir.TextType(bound=4)

    @pytest.mark.parametrize("token", ["int32[0]", "int32[<=0]", "string<=0", "int32[N]"])
    def test_invalid_bounds(self, table, token):
        (error,) = resolve_errors(table, f"{token} v")
        assert isinstance(error, InvalidBoundError)

    def test_describe_round_trips_token(self, table):
        spec = resolve_ok(table, "string<=4[<=2] b\nPoint[3] c")
        assert spec.fields[0].type.describe() == "string<=4[<=2]"
        assert spec.fields[1].type.describe() == "demo/Point[3]"


class TestNestedReferences:
    def test_bare_name_uses_own_package(self, table):
        spec = resolve_ok(table, "Point p")
        assert spec.fields[0].type == ir.NestedType(package="demo", name="Point")

    def test_qualified_name(self, table):
        spec = resolve_ok(table, "geometry/Pose[] poses")
        assert spec.fields[0].type.element.qualified_name == "geometry/Pose"

    def test_unknown_message(self, table):
        (error,) = resolve_errors(table, "geometry/Twist t")
        assert isinstance(error, UnresolvedTypeError)
        assert "geometry/Twist" in error.message

    def test_self_reference_in_place_rejected(self, table):
        (error,) = resolve_errors(table, "Test child")
        assert isinstance(error, CyclicTypeError)
        assert error.context.schema == "demo/Test"

    def test_self_reference_in_fixed_array_rejected(self, table):
        (error,) = resolve_errors(table, "Test[2] children")
        assert isinstance(error, CyclicTypeError)

    def test_self_reference_through_sequence_allowed(self, table):
        spec = resolve_ok(table, "Test[] children\nTest[<=3] few")
        assert spec.fields[0].type.element.name == "Test"


class TestDuplicates:
    def test_duplicate_field_reports_both_lines(self, table):
        (error,) = resolve_errors(table, "int32 x\nint32 x")
        assert isinstance(error, DuplicateFieldError)
        assert error.lines == (1, 2)
        assert "lines 1 and 2" in error.message

    def test_constant_and_field_share_namespace(self, table):
        (error,) = resolve_errors(table, "int32 X=1\n\nint32 X")
        assert isinstance(error, DuplicateFieldError)
        assert error.lines == (1, 3)

    def test_all_errors_collected(self, table):
        errors = resolve_errors(table, "int31 a\nint32[0] b\nint32 a\nuint8 c 300")
        assert [type(e) for e in errors] == [
            UnresolvedTypeError,
            InvalidBoundError,
            DuplicateFieldError,
            InvalidDefaultError,
        ]


class TestDefaultsAndConstants:
    def test_valid_defaults(self, table):
        spec = resolve_ok(
            table,
            "int8 a -128\nuint64 b 18446744073709551615\nbool c 1\nfloat32 d 2\n"
            "string e 'hi'\nint32[2] f [1, 2]\nstring[] g ['x']",
        )
        assert [f.default for f in spec.fields] == [
            -128,
            18446744073709551615,
            True,
            2.0,
            "hi",
            [1, 2],
            ["x"],
        ]
        assert isinstance(spec.fields[3].default, float)

    @pytest.mark.parametrize(
        "line",
        [
            "uint8 v 256",
            "int8 v -129",
            "uint32 v -1",
            "int32 v 1.5",
            "bool v 2",
            "float32 v 1e39",
            "string<=2 v 'abc'",
            "int32[3] v [1, 2]",
            "int32[<=1] v [1, 2]",
            "string v 5",
            "int32 v 'x'",
            "int32 v [1]",
            "float64 v " + "9" * 400,
        ],
    )
    def test_invalid_defaults(self, table, line):
        (error,) = resolve_errors(table, line)
        assert isinstance(error, InvalidDefaultError)

    def test_nested_default_rejected(self, table):
        (error,) = resolve_errors(table, "Point p 1")
        assert isinstance(error, InvalidDefaultError)
        assert "cannot have default" in error.message

    def test_constants(self, table):
        spec = resolve_ok(table, "int32 MAX=10\nstring NAME='demo'\nbool ON=true\nfloat64 PI=3.14")
        assert [(c.name, c.value) for c in spec.constants] == [
            ("MAX", 10),
            ("NAME", "demo"),
            ("ON", True),
            ("PI", 3.14),
        ]
        assert spec.fields == []

    def test_array_constant_rejected(self, table):
        (error,) = resolve_errors(table, "int32[2] PAIR=[1, 2]")
        assert isinstance(error, InvalidDefaultError)
        assert "primitive or string" in error.message

    def test_check_literal_utf8_bound_counts_bytes(self):
        with pytest.raises(ValueError):
            check_literal(ir.TextType(bound=2), "é!")
        assert check_literal(ir.TextType(bound=2), "é") == "é"


class TestServices:
    def test_service_halves(self, symbols):
        symbols.register_schema("demo", "Add", ir.SchemaKind.SERVICE, Path("Add.srv"))
        symbols.freeze()
        schema = make_schema("int64 a\n---\nint64 sum", name="Add", kind=ir.SchemaKind.SERVICE)
        spec, errors = resolve_schema(symbols, schema)
        assert errors == []
        assert isinstance(spec, ir.ServiceSpec)
        assert spec.request.qualified_name == "demo/Add_Request"
        assert spec.response.namespace == "srv"
        assert [m.name for m in spec.messages] == ["Add_Request", "Add_Response"]

    def test_errors_from_both_halves(self, symbols):
        symbols.register_schema("demo", "Add", ir.SchemaKind.SERVICE, Path("Add.srv"))
        schema = make_schema("int31 a\n---\nint31 b", name="Add", kind=ir.SchemaKind.SERVICE)
        spec, errors = resolve_schema(symbols, schema)
        assert spec is None
        assert [e.context.schema for e in errors] == ["demo/Add_Request", "demo/Add_Response"]
