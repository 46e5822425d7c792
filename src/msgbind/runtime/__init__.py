"""
Runtime support for generated message bindings.

Generated modules import this package as ``rt`` and nothing else
besides ``ctypes``.
"""

from .allocator import Allocator, DoubleReleaseError, get_allocator
from .descriptors import (
    Sequence,
    String,
    array_get,
    array_set,
    buffer_adopt,
    buffer_copy,
    buffer_fini,
    message_adopt,
    message_array_adopt,
    message_array_copy,
    message_array_fini,
    message_array_get,
    message_array_set,
    message_copy,
    message_fini,
    message_get,
    message_sequence_adopt,
    message_sequence_copy,
    message_sequence_fini,
    message_sequence_get,
    message_sequence_set,
    message_set,
    sequence_get,
    sequence_set,
    text_adopt,
    text_array_adopt,
    text_array_copy,
    text_array_fini,
    text_array_get,
    text_array_set,
    text_copy,
    text_fini,
    text_get,
    text_sequence_adopt,
    text_sequence_copy,
    text_sequence_fini,
    text_sequence_get,
    text_sequence_set,
    text_set,
)
from .message import Message
from .primitives import PRIMITIVE_CTYPES, check_primitive

__all__ = [
    "Allocator",
    "DoubleReleaseError",
    "Message",
    "PRIMITIVE_CTYPES",
    "Sequence",
    "String",
    "array_get",
    "array_set",
    "buffer_adopt",
    "buffer_copy",
    "buffer_fini",
    "check_primitive",
    "get_allocator",
    "message_adopt",
    "message_array_adopt",
    "message_array_copy",
    "message_array_fini",
    "message_array_get",
    "message_array_set",
    "message_copy",
    "message_fini",
    "message_get",
    "message_sequence_adopt",
    "message_sequence_copy",
    "message_sequence_fini",
    "message_sequence_get",
    "message_sequence_set",
    "message_set",
    "sequence_get",
    "sequence_set",
    "text_adopt",
    "text_array_adopt",
    "text_array_copy",
    "text_array_fini",
    "text_array_get",
    "text_array_set",
    "text_copy",
    "text_fini",
    "text_get",
    "text_sequence_adopt",
    "text_sequence_copy",
    "text_sequence_fini",
    "text_sequence_get",
    "text_sequence_set",
    "text_set",
]
