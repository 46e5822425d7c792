"""Core msgbind functionality: IR, lexer, parser, resolver, linker, configuration."""

from . import ir
from .config import CompilerConfig, load_config
from .errors import (
    CompilationError,
    CyclicTypeError,
    DuplicateDefinitionError,
    DuplicateFieldError,
    EmitError,
    ErrorContext,
    InvalidBoundError,
    InvalidDefaultError,
    LayoutError,
    MsgbindError,
    NameCollisionError,
    ResolutionError,
    SchemaIOError,
    SchemaSyntaxError,
    UnresolvedTypeError,
)
from .linker import LinkResult, SchemaUnit, link_schemas
from .linker_impl import SymbolTable
from .parser import parse_schema_file, parse_schema_text
from .resolver import resolve_schema

__all__ = [
    "ir",
    "CompilerConfig",
    "load_config",
    "MsgbindError",
    "ErrorContext",
    "SchemaSyntaxError",
    "ResolutionError",
    "UnresolvedTypeError",
    "InvalidBoundError",
    "CyclicTypeError",
    "InvalidDefaultError",
    "DuplicateFieldError",
    "DuplicateDefinitionError",
    "SchemaIOError",
    "LayoutError",
    "EmitError",
    "NameCollisionError",
    "CompilationError",
    "SymbolTable",
    "SchemaUnit",
    "LinkResult",
    "link_schemas",
    "parse_schema_text",
    "parse_schema_file",
    "resolve_schema",
]
