"""
msgbind - interface schema compiler for C-layout message bindings.

Compiles ``.msg``/``.srv`` schemas into Python modules whose ctypes
structs match the C layout of the middleware runtime, wrapped in
ownership-safe message classes.
"""

from ._version import __version__
from .compiler import CompilationResult, compile_interfaces
from .core import ir
from .core.config import CompilerConfig, load_config
from .core.errors import (
    CompilationError,
    CyclicTypeError,
    DuplicateDefinitionError,
    DuplicateFieldError,
    EmitError,
    InvalidBoundError,
    InvalidDefaultError,
    LayoutError,
    MsgbindError,
    NameCollisionError,
    SchemaIOError,
    SchemaSyntaxError,
    UnresolvedTypeError,
)

__all__ = [
    "__version__",
    "ir",
    "compile_interfaces",
    "CompilationResult",
    "CompilerConfig",
    "load_config",
    "MsgbindError",
    "SchemaSyntaxError",
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
]
