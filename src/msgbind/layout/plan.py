"""
Layout plan types.

Every field gets one ``FieldPlan`` naming its in-memory representation
and its allocation discipline:

    SemanticType            Representation  Discipline
    ----------------------  --------------  -----------------------------------
    Primitive               SCALAR          IN_PLACE
    Text                    DESCRIPTOR      SINGLE_BUFFER
    FixedArray(primitive)   ARRAY           IN_PLACE
    FixedArray(text)        ARRAY           RECURSIVE
    FixedArray(message)     ARRAY           RECURSIVE if the message owns buffers
    Sequence(primitive)     DESCRIPTOR      SINGLE_BUFFER
    Sequence(text)          DESCRIPTOR      RECURSIVE
    Sequence(message)       DESCRIPTOR      RECURSIVE if the message owns buffers,
                                            SINGLE_BUFFER otherwise
    Nested                  EMBEDDED        RECURSIVE if the message owns buffers

The emitter derives construction, destruction, cloning and adoption code
for a field from this plan alone.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Representation(str, Enum):
    """In-memory representation of a field inside the raw struct."""

    SCALAR = "scalar"
    ARRAY = "array"
    DESCRIPTOR = "descriptor"
    EMBEDDED = "embedded"


class Discipline(str, Enum):
    """What releasing a field involves."""

    IN_PLACE = "in_place"  # nothing to release
    SINGLE_BUFFER = "single_buffer"  # one heap buffer
    RECURSIVE = "recursive"  # owned sub-values, then the buffer if any


class Container(str, Enum):
    NONE = "none"
    ARRAY = "array"
    SEQUENCE = "sequence"


class ElementKind(str, Enum):
    PRIMITIVE = "primitive"
    TEXT = "text"
    MESSAGE = "message"


class MessageRef(BaseModel):
    """Where the generated class of a referenced message lives."""

    qualified_name: str
    module: str
    class_name: str
    struct_name: str
    alias: str
    owns_buffers: bool

    model_config = ConfigDict(frozen=True)


class FieldPlan(BaseModel):
    """
    Layout decision for one field.

    Attributes:
        name: Field name as declared
        attr: Python attribute and raw struct member name
        type_token: Declared type token, for generated documentation
        container: Plain value, fixed array or sequence
        element_kind: Kind of the value, or of each element
        representation: How the field is stored in the raw struct
        discipline: What destroying the field involves
        primitive: Primitive kind name when element_kind is PRIMITIVE
        text_bound: Byte bound of text values
        message: Referenced message when element_kind is MESSAGE
        length: Element count of a fixed array
        bound: Upper bound of a bounded sequence
        default: Validated default value
        comment: Trailing comment of the declaration
    """

    name: str
    attr: str
    type_token: str
    container: Container
    element_kind: ElementKind
    representation: Representation
    discipline: Discipline
    primitive: str | None = None
    text_bound: int | None = None
    message: MessageRef | None = None
    length: int | None = None
    bound: int | None = None
    default: Any = None
    comment: str | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def family(self) -> str:
        """
        Name prefix of the runtime operations handling this field.

        One of ``scalar``, ``text``, ``message``, ``array``, ``text_array``,
        ``message_array``, ``sequence``, ``text_sequence``, ``message_sequence``.
        """
        if self.container == Container.NONE:
            return {
                ElementKind.PRIMITIVE: "scalar",
                ElementKind.TEXT: "text",
                ElementKind.MESSAGE: "message",
            }[self.element_kind]
        prefix = {
            ElementKind.PRIMITIVE: "",
            ElementKind.TEXT: "text_",
            ElementKind.MESSAGE: "message_",
        }[self.element_kind]
        return f"{prefix}{self.container.value}"

    @property
    def owns_buffers(self) -> bool:
        return self.discipline != Discipline.IN_PLACE


class ConstantPlan(BaseModel):
    """A constant emitted as a class attribute."""

    name: str
    attr: str
    type_token: str
    value: bool | int | float | str
    comment: str | None = None

    model_config = ConfigDict(frozen=True)


class MessagePlan(BaseModel):
    """Layout of one message: the table consumed by the emitter."""

    qualified_name: str
    package: str
    namespace: str
    name: str
    module: str
    module_name: str
    struct_name: str
    fields: list[FieldPlan] = Field(default_factory=list)
    constants: list[ConstantPlan] = Field(default_factory=list)
    file: Path | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def owns_buffers(self) -> bool:
        return any(f.owns_buffers for f in self.fields)

    def in_place_dependencies(self) -> list[MessageRef]:
        """Messages embedded in place (directly or in fixed arrays), in field order."""
        return _unique(
            f.message
            for f in self.fields
            if f.message is not None and f.container != Container.SEQUENCE
        )

    def sequence_dependencies(self) -> list[MessageRef]:
        """Messages referenced only through sequences, in field order."""
        in_place = {m.qualified_name for m in self.in_place_dependencies()}
        return _unique(
            f.message
            for f in self.fields
            if f.message is not None
            and f.container == Container.SEQUENCE
            and f.message.qualified_name not in in_place
        )


def _unique(refs) -> list[MessageRef]:
    seen: dict[str, MessageRef] = {}
    for ref in refs:
        seen.setdefault(ref.qualified_name, ref)
    return list(seen.values())
