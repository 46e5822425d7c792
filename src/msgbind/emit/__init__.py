"""Binding emitters: planned messages to generated Python/ctypes source."""

from .generator import GeneratedFile, Generator, GeneratorResult, write_files
from .python_ctypes import (
    BindingGenerator,
    emit_message_module,
    emit_namespace_init,
    emit_package_init,
    emit_service_module,
)

__all__ = [
    "BindingGenerator",
    "GeneratedFile",
    "Generator",
    "GeneratorResult",
    "emit_message_module",
    "emit_namespace_init",
    "emit_package_init",
    "emit_service_module",
    "write_files",
]
