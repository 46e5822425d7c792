"""
Property-based tests using Hypothesis.

These tests verify invariants across a wide range of inputs: primitive
values survive the raw conversion unchanged, text and sequences round-trip
through their descriptors, and the parser only ever fails with
SchemaSyntaxError.
"""

import importlib
import sys
from pathlib import Path

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from msgbind import compile_interfaces, runtime
from msgbind.core.errors import SchemaSyntaxError
from msgbind.core.parser import parse_schema_text
from msgbind.runtime.primitives import INTEGER_RANGES

PACKAGE = "props"

PRIMITIVES = "Primitives.msg", "".join(
    f"{kind} f_{kind}\n" for kind in ["bool", *INTEGER_RANGES, "float32", "float64"]
)
CONTAINERS = "Containers.msg", "string text\nint64[] values\nstring<=16[] names\nfloat32[4] quad\n"


@pytest.fixture(scope="module")
def props(tmp_path_factory):
    """Generated ``props`` package, compiled once for the whole module."""
    root = tmp_path_factory.mktemp("props")
    paths = []
    for name, text in (PRIMITIVES, CONTAINERS):
        path = root / "schemas" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)
        paths.append(path)
    compile_interfaces(PACKAGE, paths, root / "out").raise_for_errors()

    sys.path.insert(0, str(root / "out"))
    importlib.invalidate_caches()
    yield importlib.import_module(f"{PACKAGE}.msg")
    sys.path.remove(str(root / "out"))
    for name in list(sys.modules):
        if name.split(".")[0] == PACKAGE:
            del sys.modules[name]


def integers_for(kind: str):
    low, high = INTEGER_RANGES[kind]
    return st.integers(min_value=low, max_value=high)


primitive_values = st.fixed_dictionaries(
    {
        "f_bool": st.booleans(),
        **{f"f_{kind}": integers_for(kind) for kind in INTEGER_RANGES},
        "f_float32": st.floats(width=32, allow_nan=False),
        "f_float64": st.floats(allow_nan=False),
    }
)


# =============================================================================
# Generated wrappers
# =============================================================================


class TestPrimitiveRoundTrip:
    @given(values=primitive_values)
    @settings(max_examples=200)
    def test_raw_round_trip_preserves_values(self, props, values: dict) -> None:
        """Invariant: from_raw(to_raw(m)) has exactly the values m was built with."""
        msg = props.Primitives(**values)
        back = props.Primitives.from_raw(msg.to_raw())
        assert back.to_dict() == values
        msg.destroy()
        back.destroy()

    @given(kind=st.sampled_from(sorted(INTEGER_RANGES)), data=st.data())
    def test_out_of_range_rejected(self, props, kind: str, data) -> None:
        """Invariant: integers outside the kind's range never reach the struct."""
        low, high = INTEGER_RANGES[kind]
        value = data.draw(
            st.one_of(st.integers(max_value=low - 1), st.integers(min_value=high + 1))
        )
        msg = props.Primitives()
        with pytest.raises(OverflowError):
            setattr(msg, f"f_{kind}", value)
        assert getattr(msg, f"f_{kind}") == 0


class TestContainerRoundTrip:
    @given(
        text=st.text(max_size=64),
        values=st.lists(integers_for("int64"), max_size=20),
        names=st.lists(st.text(max_size=4), max_size=8),
        quad=st.lists(st.floats(width=32, allow_nan=False), min_size=4, max_size=4),
    )
    @settings(max_examples=100)
    def test_clone_and_raw_round_trip(self, props, text, values, names, quad) -> None:
        """Invariant: clones and raw round-trips are equal and leave no buffer behind."""
        allocator = runtime.get_allocator()
        before = allocator.live_count

        msg = props.Containers(text=text, values=values, names=names, quad=quad)
        twin = msg.clone()
        back = props.Containers.from_raw(twin.to_raw())
        assert msg.to_dict() == {"text": text, "values": values, "names": names, "quad": quad}
        assert back == twin == msg

        for item in (msg, twin, back):
            item.destroy()
        assert allocator.live_count == before


class TestTextDescriptor:
    @given(st.text())
    def test_text_round_trip(self, text: str) -> None:
        desc = runtime.String()
        runtime.text_set(desc, text, None, "f")
        try:
            assert runtime.text_get(desc) == text
            assert desc.size == len(text.encode("utf-8"))
        finally:
            runtime.text_fini(desc)

    @given(st.text(min_size=1), st.integers(min_value=1, max_value=32))
    def test_bound_is_exact(self, text: str, bound: int) -> None:
        """Invariant: a bounded string accepts exactly the values of at most ``bound`` bytes."""
        desc = runtime.String()
        fits = len(text.encode("utf-8")) <= bound
        try:
            runtime.text_set(desc, text, bound, "f")
        except ValueError:
            assert not fits
        else:
            assert fits
        finally:
            runtime.text_fini(desc)


# =============================================================================
# Parser robustness
# =============================================================================


class TestParserProperties:
    @given(st.text(max_size=200))
    @settings(max_examples=300)
    def test_parser_fails_only_with_syntax_errors(self, text: str) -> None:
        """Invariant: arbitrary input either parses or raises SchemaSyntaxError."""
        try:
            parse_schema_text(text, Path("Fuzz.msg"))
        except SchemaSyntaxError:
            pass

    @given(
        st.lists(
            st.tuples(
                st.sampled_from(["int32", "string", "float64[3]", "uint8[<=4]", "pkg/Msg[]"]),
                st.from_regex(r"[a-z][a-z0-9_]{0,10}", fullmatch=True),
            ),
            max_size=10,
        )
    )
    def test_declarations_preserved_in_order(self, decls) -> None:
        """Invariant: well-formed lines parse to the same (type, name) list."""
        text = "".join(f"{type_} {name}\n" for type_, name in decls)
        (block,) = parse_schema_text(text, Path("Gen.msg"))
        assert [(d.type.text, d.name) for d in block.fields] == decls
