"""
Parser output for msgbind schemas.

These models are purely syntactic: a ``TypeRef`` records how a type was
spelled, bounds are kept as written, and nothing has been checked
against the symbol table yet.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ArrayKind(str, Enum):
    """Array suffix attached to a type token."""

    NONE = "none"  # T
    FIXED = "fixed"  # T[N]
    UNBOUNDED = "unbounded"  # T[]
    BOUNDED = "bounded"  # T[<=N]


class SchemaKind(str, Enum):
    """Kind of interface file, derived from its extension."""

    MESSAGE = "msg"
    SERVICE = "srv"


class TypeRef(BaseModel):
    """
    A declared type token.

    Attributes:
        base: Primitive name, ``string`` or message name
        package: Package prefix for ``package/Message`` tokens
        string_bound: Bound text of ``string<=N``
        array: Array suffix kind
        array_bound: Bound text of ``[N]`` or ``[<=N]``
        text: The token as written
    """

    base: str
    package: str | None = None
    string_bound: str | None = None
    array: ArrayKind = ArrayKind.NONE
    array_bound: str | None = None
    text: str

    model_config = ConfigDict(frozen=True)


class LiteralValue(BaseModel):
    """
    A literal value as parsed.

    ``value`` is a bool, int, float, str or a list of those; ``text`` is the
    source spelling used in error messages.
    """

    value: Any
    text: str

    model_config = ConfigDict(frozen=True)


class Declaration(BaseModel):
    """Common part of field and constant declarations."""

    type: TypeRef
    name: str
    line: int
    column: int = 1
    source: str = ""
    comment: str | None = None

    model_config = ConfigDict(frozen=True)


class FieldDecl(Declaration):
    """``TYPE NAME [DEFAULT]``"""

    default: LiteralValue | None = None


class ConstantDecl(Declaration):
    """``TYPE NAME=LITERAL``"""

    value: LiteralValue


class MessageBlock(BaseModel):
    """Declarations of one message, or of one half of a service."""

    declarations: list[FieldDecl | ConstantDecl] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @property
    def fields(self) -> list[FieldDecl]:
        return [d for d in self.declarations if isinstance(d, FieldDecl)]

    @property
    def constants(self) -> list[ConstantDecl]:
        return [d for d in self.declarations if isinstance(d, ConstantDecl)]


class SchemaFile(BaseModel):
    """
    One parsed input file.

    A message schema has one block; a service schema has exactly two
    (request, response).
    """

    package: str
    name: str
    kind: SchemaKind
    path: Path
    blocks: list[MessageBlock]

    model_config = ConfigDict(frozen=True)

    @property
    def qualified_name(self) -> str:
        return f"{self.package}/{self.name}"
