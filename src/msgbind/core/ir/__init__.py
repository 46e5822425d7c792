"""
msgbind intermediate representation.

- declarations: syntactic parser output (``SchemaFile``, ``FieldDecl``...)
- types: the closed ``SemanticType`` variant
- messages: resolved ``MessageSpec`` / ``ServiceSpec``
"""

from .declarations import (
    ArrayKind,
    ConstantDecl,
    Declaration,
    FieldDecl,
    LiteralValue,
    MessageBlock,
    SchemaFile,
    SchemaKind,
    TypeRef,
)
from .messages import ConstantSpec, FieldSpec, MessageSpec, ServiceSpec, nested_of
from .types import (
    PRIMITIVE_ALIASES,
    STRING_TYPE_NAME,
    ElementType,
    FixedArrayType,
    NestedType,
    PrimitiveKind,
    PrimitiveType,
    SemanticType,
    SequenceType,
    TextType,
    lookup_primitive,
)

__all__ = [
    # declarations
    "ArrayKind",
    "ConstantDecl",
    "Declaration",
    "FieldDecl",
    "LiteralValue",
    "MessageBlock",
    "SchemaFile",
    "SchemaKind",
    "TypeRef",
    # types
    "PRIMITIVE_ALIASES",
    "STRING_TYPE_NAME",
    "ElementType",
    "FixedArrayType",
    "NestedType",
    "PrimitiveKind",
    "PrimitiveType",
    "SemanticType",
    "SequenceType",
    "TextType",
    "lookup_primitive",
    # messages
    "ConstantSpec",
    "FieldSpec",
    "MessageSpec",
    "ServiceSpec",
    "nested_of",
]
