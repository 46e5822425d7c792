"""
Semantic type definitions for msgbind IR.

A declared type token (``int32[3]``, ``string<=8``, ``geometry/Point[]``)
resolves to exactly one member of the closed ``SemanticType`` variant.
Every later stage matches on the ``tag`` discriminator instead of
re-reading the token.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class PrimitiveKind(str, Enum):
    """Fixed-width primitive kinds of the interface language."""

    BOOL = "bool"
    INT8 = "int8"
    UINT8 = "uint8"
    INT16 = "int16"
    UINT16 = "uint16"
    INT32 = "int32"
    UINT32 = "uint32"
    INT64 = "int64"
    UINT64 = "uint64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"

    @property
    def is_integer(self) -> bool:
        return self not in (PrimitiveKind.BOOL, PrimitiveKind.FLOAT32, PrimitiveKind.FLOAT64)

    @property
    def is_float(self) -> bool:
        return self in (PrimitiveKind.FLOAT32, PrimitiveKind.FLOAT64)

    @property
    def is_signed(self) -> bool:
        return self.value.startswith("int") or self.is_float

    @property
    def bits(self) -> int:
        """Storage width in bits."""
        if self is PrimitiveKind.BOOL:
            return 8
        return int(self.value.lstrip("uintfloa"))

    def integer_range(self) -> tuple[int, int]:
        """Inclusive value range of an integer kind."""
        if not self.is_integer:
            raise ValueError(f"{self.value} is not an integer kind")
        if self.is_signed:
            return -(1 << (self.bits - 1)), (1 << (self.bits - 1)) - 1
        return 0, (1 << self.bits) - 1


# Spellings accepted in schemas besides the canonical kind names.
PRIMITIVE_ALIASES: dict[str, PrimitiveKind] = {
    "byte": PrimitiveKind.UINT8,
    "char": PrimitiveKind.UINT8,
}

STRING_TYPE_NAME = "string"


def lookup_primitive(name: str) -> PrimitiveKind | None:
    """Return the primitive kind spelled ``name``, or None."""
    if name in PRIMITIVE_ALIASES:
        return PRIMITIVE_ALIASES[name]
    try:
        return PrimitiveKind(name)
    except ValueError:
        return None


class PrimitiveType(BaseModel):
    """A fixed-width scalar stored in place."""

    tag: Literal["primitive"] = "primitive"
    kind: PrimitiveKind

    model_config = ConfigDict(frozen=True)

    def describe(self) -> str:
        return self.kind.value


class TextType(BaseModel):
    """
    A string of 1-byte code units.

    Examples:
        - string: TextType(bound=None)
        - string<=16: TextType(bound=16)
    """

    tag: Literal["text"] = "text"
    bound: int | None = Field(default=None, gt=0)

    model_config = ConfigDict(frozen=True)

    def describe(self) -> str:
        return "string" if self.bound is None else f"string<={self.bound}"


class NestedType(BaseModel):
    """Reference to another message, possibly in another package."""

    tag: Literal["nested"] = "nested"
    package: str
    name: str

    model_config = ConfigDict(frozen=True)

    @property
    def qualified_name(self) -> str:
        return f"{self.package}/{self.name}"

    def describe(self) -> str:
        return self.qualified_name


ElementType = Annotated[
    Union[PrimitiveType, TextType, NestedType],
    Field(discriminator="tag"),
]


class FixedArrayType(BaseModel):
    """Exactly ``length`` elements stored in place."""

    tag: Literal["fixed_array"] = "fixed_array"
    element: ElementType
    length: int = Field(gt=0)

    model_config = ConfigDict(frozen=True)

    def describe(self) -> str:
        return f"{self.element.describe()}[{self.length}]"


class SequenceType(BaseModel):
    """
    A dynamically sized list behind a pointer + size + capacity descriptor.

    ``bound`` is None for an unbounded sequence.
    """

    tag: Literal["sequence"] = "sequence"
    element: ElementType
    bound: int | None = Field(default=None, gt=0)

    model_config = ConfigDict(frozen=True)

    def describe(self) -> str:
        suffix = "[]" if self.bound is None else f"[<={self.bound}]"
        return f"{self.element.describe()}{suffix}"


SemanticType = Annotated[
    Union[PrimitiveType, TextType, NestedType, FixedArrayType, SequenceType],
    Field(discriminator="tag"),
]
