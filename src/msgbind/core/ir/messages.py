"""
Resolved message and service specifications.

This is the validated semantic model handed to the layout planner and
the emitter. Field order is significant: it fixes the raw struct layout.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .types import NestedType, PrimitiveType, SemanticType, TextType


class FieldSpec(BaseModel):
    """
    Specification for a single message field.

    Attributes:
        name: Field identifier, unique within its message
        type_token: The declared type token as written
        type: Resolved semantic type
        default: Validated default value (Python value), if any
        line: Declaration line in the schema file
        comment: Trailing comment of the declaration
    """

    name: str
    type_token: str
    type: SemanticType
    default: Any = None
    line: int = 0
    comment: str | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def has_default(self) -> bool:
        return self.default is not None


class ConstantSpec(BaseModel):
    """A named immutable value declared with ``TYPE NAME=LITERAL``."""

    name: str
    type: PrimitiveType | TextType
    value: bool | int | float | str
    line: int = 0
    comment: str | None = None

    model_config = ConfigDict(frozen=True)


class MessageSpec(BaseModel):
    """
    A resolved message.

    ``namespace`` is ``msg`` for message files and ``srv`` for the request
    and response halves of a service.
    """

    package: str
    name: str
    namespace: str = "msg"
    fields: list[FieldSpec] = Field(default_factory=list)
    constants: list[ConstantSpec] = Field(default_factory=list)
    file: Path | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def qualified_name(self) -> str:
        return f"{self.package}/{self.name}"

    def get_field(self, name: str) -> FieldSpec | None:
        for field in self.fields:
            if field.name == name:
                return field
        return None

    def nested_references(self) -> list[NestedType]:
        """Every message referenced by a field, in field order, without repeats."""
        seen: dict[str, NestedType] = {}
        for field in self.fields:
            ref = nested_of(field.type)
            if ref is not None and ref.qualified_name not in seen:
                seen[ref.qualified_name] = ref
        return list(seen.values())


class ServiceSpec(BaseModel):
    """A resolved service: a request/response message pair."""

    package: str
    name: str
    request: MessageSpec
    response: MessageSpec
    file: Path | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def qualified_name(self) -> str:
        return f"{self.package}/{self.name}"

    @property
    def messages(self) -> list[MessageSpec]:
        return [self.request, self.response]


def nested_of(semantic_type: SemanticType) -> NestedType | None:
    """Return the message referenced by a type, looking through containers."""
    if isinstance(semantic_type, NestedType):
        return semantic_type
    element = getattr(semantic_type, "element", None)
    if isinstance(element, NestedType):
        return element
    return None
