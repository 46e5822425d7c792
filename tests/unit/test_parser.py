"""Tests for the schema parser."""

from pathlib import Path

import pytest

from msgbind.core import ir
from msgbind.core.errors import SchemaIOError, SchemaSyntaxError
from msgbind.core.parser import parse_schema_file, parse_schema_text, schema_identity

MSG = Path("Test.msg")
SRV = Path("Test.srv")


def parse_one(text: str) -> ir.MessageBlock:
    blocks = parse_schema_text(text, MSG)
    assert len(blocks) == 1
    return blocks[0]


class TestDeclarations:
    def test_fields_in_order(self):
        block = parse_one("int32 x\nstring name\nint32[3] ids\n")
        assert [d.name for d in block.fields] == ["x", "name", "ids"]
        assert [d.type.text for d in block.fields] == ["int32", "string", "int32[3]"]
        assert [d.line for d in block.fields] == [1, 2, 3]

    def test_blank_and_comment_lines_skipped(self):
        block = parse_one("\n# a comment\n\nint32 x\n\n")
        assert len(block.declarations) == 1
        assert block.declarations[0].line == 4

    def test_constant(self):
        block = parse_one("int32 MAX=10\n")
        (constant,) = block.constants
        assert constant.name == "MAX"
        assert constant.value.value == 10
        assert block.fields == []

    def test_constant_with_spaces_around_equals(self):
        block = parse_one("string GREETING = 'hello'\n")
        assert block.constants[0].value.value == "hello"

    def test_field_default(self):
        block = parse_one("float64 ratio 0.5\n")
        (field,) = block.fields
        assert field.default.value == 0.5
        assert field.default.text == "0.5"

    def test_boolean_default(self):
        block = parse_one("bool enabled true\nbool other False\n")
        assert [f.default.value for f in block.fields] == [True, False]

    def test_array_default(self):
        block = parse_one("int32[3] ids [1, -2, 3]\n")
        assert block.fields[0].default.value == [1, -2, 3]

    def test_empty_array_default(self):
        block = parse_one("int32[] ids []\n")
        assert block.fields[0].default.value == []

    def test_trailing_comment_attached(self):
        block = parse_one("int32 x  # metres\nint32 y\n")
        assert block.fields[0].comment == "metres"
        assert block.fields[1].comment is None

    def test_source_kept_for_snippets(self):
        block = parse_one("   int32 x   \n")
        assert block.fields[0].source == "int32 x"
        assert block.fields[0].column == 4


class TestTypeTokens:
    @pytest.mark.parametrize(
        "token,array,bound",
        [
            ("int32", ir.ArrayKind.NONE, None),
            ("int32[4]", ir.ArrayKind.FIXED, "4"),
            ("int32[]", ir.ArrayKind.UNBOUNDED, None),
            ("int32[<=4]", ir.ArrayKind.BOUNDED, "4"),
        ],
    )
    def test_array_suffixes(self, token, array, bound):
        ref = parse_one(f"{token} v").fields[0].type
        assert ref.base == "int32"
        assert ref.array == array
        assert ref.array_bound == bound
        assert ref.text == token

    def test_bounded_string(self):
        ref = parse_one("string<=16[2] v").fields[0].type
        assert ref.base == "string"
        assert ref.string_bound == "16"
        assert ref.array == ir.ArrayKind.FIXED
        assert ref.text == "string<=16[2]"

    def test_package_reference(self):
        ref = parse_one("geometry/Point[] points").fields[0].type
        assert (ref.package, ref.base) == ("geometry", "Point")
        assert ref.array == ir.ArrayKind.UNBOUNDED

    def test_bound_is_kept_as_written(self):
        ref = parse_one("int32[N] v").fields[0].type
        assert ref.array_bound == "N"

    def test_bound_on_non_string_rejected(self):
        with pytest.raises(SchemaSyntaxError, match="Only string types"):
            parse_one("int32<=5 v")


class TestSyntaxErrors:
    def test_missing_name(self):
        with pytest.raises(SchemaSyntaxError) as exc_info:
            parse_one("int32 x\nint32\n")
        assert exc_info.value.line == 2
        assert "field name" in exc_info.value.message

    def test_trailing_garbage(self):
        with pytest.raises(SchemaSyntaxError) as exc_info:
            parse_one("int32 x 1 2\n")
        assert "after declaration of 'x'" in exc_info.value.message

    def test_unclosed_array(self):
        with pytest.raises(SchemaSyntaxError):
            parse_one("int32[3 v\n")

    def test_unknown_literal(self):
        with pytest.raises(SchemaSyntaxError, match="Expected a value"):
            parse_one("int32 MAX=\n")

    def test_error_carries_file(self):
        with pytest.raises(SchemaSyntaxError) as exc_info:
            parse_one("int32 x y z\n")
        assert exc_info.value.file == MSG


class TestServices:
    def test_two_blocks(self):
        request, response = parse_schema_text(
            "int64 a\nint64 b\n---\nint64 sum\n", SRV, ir.SchemaKind.SERVICE
        )
        assert [d.name for d in request.declarations] == ["a", "b"]
        assert [d.name for d in response.declarations] == ["sum"]

    def test_empty_halves(self):
        blocks = parse_schema_text("---\n", SRV, ir.SchemaKind.SERVICE)
        assert [len(b.declarations) for b in blocks] == [0, 0]

    def test_missing_separator(self):
        with pytest.raises(SchemaSyntaxError, match="found none"):
            parse_schema_text("int64 a\n", SRV, ir.SchemaKind.SERVICE)

    def test_two_separators(self):
        with pytest.raises(SchemaSyntaxError) as exc_info:
            parse_schema_text("int64 a\n---\nint64 b\n---\n", SRV, ir.SchemaKind.SERVICE)
        assert exc_info.value.line == 4

    def test_separator_in_message(self):
        with pytest.raises(SchemaSyntaxError, match="Service separator"):
            parse_schema_text("int64 a\n---\n", MSG, ir.SchemaKind.MESSAGE)


class TestSchemaFiles:
    def test_identity_from_path(self):
        assert schema_identity(Path("pkg/msg/Sample.msg")) == ("Sample", ir.SchemaKind.MESSAGE)
        assert schema_identity(Path("AddTwoInts.srv")) == ("AddTwoInts", ir.SchemaKind.SERVICE)

    def test_unsupported_extension(self):
        with pytest.raises(SchemaIOError, match="extension"):
            schema_identity(Path("Sample.action"))

    def test_stem_must_be_identifier(self):
        with pytest.raises(SchemaIOError, match="not a valid identifier"):
            schema_identity(Path("my-msg.msg"))

    def test_parse_file(self, write_schema):
        path = write_schema("demo/msg/Sample.msg", "int32 x\n")
        schema = parse_schema_file(path, "demo")
        assert schema.qualified_name == "demo/Sample"
        assert schema.kind == ir.SchemaKind.MESSAGE
        assert schema.blocks[0].fields[0].name == "x"

    def test_missing_file(self, tmp_path):
        with pytest.raises(SchemaIOError, match="Cannot read schema"):
            parse_schema_file(tmp_path / "Missing.msg", "demo")
