"""
Descriptor structs and the buffer operations generated code calls.

A descriptor is the C triple ``{data, size, capacity}``. Operations come
in families, one per field representation:

- ``text_*``: a ``String`` descriptor holding UTF-8 bytes; bytes that are
  not valid UTF-8 read back as surrogate escapes and store unchanged
- ``sequence_*``: a ``Sequence`` of primitive values
- ``text_sequence_*``: a ``Sequence`` of ``String`` descriptors
- ``message_sequence_*``: a ``Sequence`` of nested raw structs
- ``array_*``, ``text_array_*``, ``message_array_*``: fixed arrays in place
- ``message_*``: a nested raw struct embedded in place
- ``buffer_*``: single-buffer release, copy and adoption shared by all

Every ``*_fini`` leaves the descriptor zeroed, so releasing twice is a
no-op. Every ``*_copy`` writes into a destination that owns no buffers
(a freshly zeroed struct) and allocates fresh buffers for it.
"""

import ctypes
from collections.abc import Mapping

from .allocator import get_allocator
from .primitives import PRIMITIVE_CTYPES, check_primitive


class String(ctypes.Structure):
    """``char *data; size_t size; size_t capacity``."""

    _fields_ = [
        ("data", ctypes.c_void_p),
        ("size", ctypes.c_size_t),
        ("capacity", ctypes.c_size_t),
    ]


class Sequence(ctypes.Structure):
    """``T *data; size_t size; size_t capacity`` for any element type T."""

    _fields_ = [
        ("data", ctypes.c_void_p),
        ("size", ctypes.c_size_t),
        ("capacity", ctypes.c_size_t),
    ]


# ----------------------------------------------------------------------
# Shared helpers
# ----------------------------------------------------------------------


def _as_list(values, field: str) -> list:
    if isinstance(values, str):
        raise TypeError(f"{field}: expected a sequence of values, got str")
    try:
        return list(values)
    except TypeError:
        raise TypeError(
            f"{field}: expected a sequence of values, got {type(values).__name__}"
        ) from None


def _check_bound(count: int, bound: int | None, field: str) -> None:
    if bound is not None and count > bound:
        raise ValueError(f"{field}: at most {bound} element(s) allowed, got {count}")


def _check_length(count: int, length: int, field: str) -> None:
    if count != length:
        raise ValueError(f"{field}: expected exactly {length} element(s), got {count}")


def _elements(desc, element_type) -> list:
    if not desc.data or not desc.size:
        return []
    return list((element_type * desc.size).from_address(desc.data))


def _replace(desc, new, fini) -> None:
    """Move ``new`` into ``desc``, then release what ``desc`` held before."""
    old = type(desc)(desc.data, desc.size, desc.capacity)
    desc.data, desc.size, desc.capacity = new.data, new.size, new.capacity
    fini(old)


def _as_message(cls, value, field: str, temps: list):
    if isinstance(value, cls):
        return value
    if isinstance(value, Mapping):
        item = cls(**value)
        temps.append(item)
        return item
    raise TypeError(f"{field}: expected {cls.__name__} or a mapping, got {type(value).__name__}")


def _destroy_all(temps: list) -> None:
    for item in temps:
        item.destroy()


# ----------------------------------------------------------------------
# Single buffers
# ----------------------------------------------------------------------


def buffer_fini(desc) -> None:
    """Release the buffer behind a descriptor and zero it."""
    data = desc.data
    desc.data = None
    desc.size = 0
    desc.capacity = 0
    get_allocator().release(data)


def buffer_copy(src, dst, itemsize: int) -> None:
    """Deep-copy ``size`` elements of ``itemsize`` bytes into a fresh buffer."""
    if not src.data or not src.size:
        dst.data, dst.size, dst.capacity = None, 0, 0
        return
    nbytes = src.size * itemsize
    address = get_allocator().allocate(nbytes)
    ctypes.memmove(address, src.data, nbytes)
    dst.data, dst.size, dst.capacity = address, src.size, src.size


def buffer_adopt(desc) -> None:
    get_allocator().adopt(desc.data)


# ----------------------------------------------------------------------
# Text
# ----------------------------------------------------------------------


def _encode_text(value, bound: int | None, field: str) -> bytes:
    if not isinstance(value, str):
        raise TypeError(f"{field}: expected str, got {type(value).__name__}")
    data = value.encode("utf-8", "surrogateescape")
    if bound is not None and len(data) > bound:
        raise ValueError(f"{field}: at most {bound} byte(s) allowed, got {len(data)}")
    return data


def _store_text(desc: String, data: bytes) -> None:
    if data:
        address = get_allocator().allocate(len(data) + 1)
        ctypes.memmove(address, data, len(data))
        new = String(address, len(data), len(data) + 1)
    else:
        new = String(None, 0, 0)
    _replace(desc, new, buffer_fini)


def text_get(desc: String) -> str:
    if not desc.data or not desc.size:
        return ""
    return ctypes.string_at(desc.data, desc.size).decode("utf-8", "surrogateescape")


def text_set(desc: String, value, bound: int | None, field: str) -> None:
    """Store ``value`` in a fresh NUL-terminated buffer, releasing the old one."""
    _store_text(desc, _encode_text(value, bound, field))


def text_fini(desc: String) -> None:
    buffer_fini(desc)


def text_copy(src: String, dst: String) -> None:
    if not src.data or not src.size:
        dst.data, dst.size, dst.capacity = None, 0, 0
        return
    address = get_allocator().allocate(src.size + 1)
    ctypes.memmove(address, src.data, src.size)
    dst.data, dst.size, dst.capacity = address, src.size, src.size + 1


def text_adopt(desc: String) -> None:
    buffer_adopt(desc)


# ----------------------------------------------------------------------
# Sequences of primitives
# ----------------------------------------------------------------------


def sequence_get(desc: Sequence, kind: str) -> list:
    return _elements(desc, PRIMITIVE_CTYPES[kind])


def sequence_set(desc: Sequence, kind: str, values, bound: int | None, field: str) -> None:
    items = [
        check_primitive(kind, v, f"{field}[{i}]") for i, v in enumerate(_as_list(values, field))
    ]
    _check_bound(len(items), bound, field)

    new = Sequence(None, 0, 0)
    if items:
        ctype = PRIMITIVE_CTYPES[kind]
        new.data = get_allocator().allocate(ctypes.sizeof(ctype) * len(items))
        new.size = new.capacity = len(items)
        (ctype * len(items)).from_address(new.data)[:] = items
    _replace(desc, new, buffer_fini)


# ----------------------------------------------------------------------
# Sequences of text
# ----------------------------------------------------------------------


def text_sequence_get(desc: Sequence) -> list[str]:
    return [text_get(s) for s in _elements(desc, String)]


def text_sequence_set(
    desc: Sequence, values, bound: int | None, text_bound: int | None, field: str
) -> None:
    encoded = [
        _encode_text(v, text_bound, f"{field}[{i}]")
        for i, v in enumerate(_as_list(values, field))
    ]
    _check_bound(len(encoded), bound, field)

    new = Sequence(None, 0, 0)
    if encoded:
        new.data = get_allocator().allocate(ctypes.sizeof(String) * len(encoded))
        new.size = new.capacity = len(encoded)
        try:
            for elem, data in zip(_elements(new, String), encoded):
                _store_text(elem, data)
        except BaseException:
            text_sequence_fini(new)
            raise
    _replace(desc, new, text_sequence_fini)


def text_sequence_fini(desc: Sequence) -> None:
    for elem in _elements(desc, String):
        buffer_fini(elem)
    buffer_fini(desc)


def text_sequence_copy(src: Sequence, dst: Sequence) -> None:
    if not src.data or not src.size:
        dst.data, dst.size, dst.capacity = None, 0, 0
        return
    dst.data = get_allocator().allocate(ctypes.sizeof(String) * src.size)
    dst.size = dst.capacity = src.size
    try:
        for s, d in zip(_elements(src, String), _elements(dst, String)):
            text_copy(s, d)
    except BaseException:
        text_sequence_fini(dst)
        raise


def text_sequence_adopt(desc: Sequence) -> None:
    buffer_adopt(desc)
    for elem in _elements(desc, String):
        buffer_adopt(elem)


# ----------------------------------------------------------------------
# Sequences of nested messages
# ----------------------------------------------------------------------


def message_sequence_get(desc: Sequence, cls) -> list:
    """Owned copies of every element."""
    return [cls._from_raw_copy(e) for e in _elements(desc, cls._raw_type_)]


def message_sequence_set(desc: Sequence, cls, values, bound: int | None, field: str) -> None:
    temps: list = []
    try:
        items = [
            _as_message(cls, v, f"{field}[{i}]", temps)
            for i, v in enumerate(_as_list(values, field))
        ]
        _check_bound(len(items), bound, field)

        new = Sequence(None, 0, 0)
        if items:
            new.data = get_allocator().allocate(ctypes.sizeof(cls._raw_type_) * len(items))
            new.size = new.capacity = len(items)
            try:
                for elem, item in zip(_elements(new, cls._raw_type_), items):
                    cls._copy_raw(item._raw, elem)
            except BaseException:
                message_sequence_fini(new, cls)
                raise
        _replace(desc, new, lambda old: message_sequence_fini(old, cls))
    finally:
        _destroy_all(temps)


def message_sequence_fini(desc: Sequence, cls) -> None:
    for elem in _elements(desc, cls._raw_type_):
        cls._fini_raw(elem)
    buffer_fini(desc)


def message_sequence_copy(src: Sequence, dst: Sequence, cls) -> None:
    if not src.data or not src.size:
        dst.data, dst.size, dst.capacity = None, 0, 0
        return
    dst.data = get_allocator().allocate(ctypes.sizeof(cls._raw_type_) * src.size)
    dst.size = dst.capacity = src.size
    try:
        for s, d in zip(_elements(src, cls._raw_type_), _elements(dst, cls._raw_type_)):
            cls._copy_raw(s, d)
    except BaseException:
        message_sequence_fini(dst, cls)
        raise


def message_sequence_adopt(desc: Sequence, cls) -> None:
    buffer_adopt(desc)
    for elem in _elements(desc, cls._raw_type_):
        cls._adopt_raw(elem)


# ----------------------------------------------------------------------
# Fixed arrays
# ----------------------------------------------------------------------


def array_get(arr) -> list:
    return list(arr)


def array_set(arr, kind: str, values, length: int, field: str) -> None:
    items = [
        check_primitive(kind, v, f"{field}[{i}]") for i, v in enumerate(_as_list(values, field))
    ]
    _check_length(len(items), length, field)
    arr[:] = items


def text_array_get(arr) -> list[str]:
    return [text_get(s) for s in arr]


def text_array_set(arr, values, length: int, bound: int | None, field: str) -> None:
    encoded = [
        _encode_text(v, bound, f"{field}[{i}]") for i, v in enumerate(_as_list(values, field))
    ]
    _check_length(len(encoded), length, field)
    for elem, data in zip(arr, encoded):
        _store_text(elem, data)


def text_array_fini(arr) -> None:
    for elem in arr:
        buffer_fini(elem)


def text_array_copy(src, dst) -> None:
    try:
        for s, d in zip(src, dst):
            text_copy(s, d)
    except BaseException:
        text_array_fini(dst)
        raise


def text_array_adopt(arr) -> None:
    for elem in arr:
        buffer_adopt(elem)


def message_array_get(arr, cls) -> list:
    """Owned copies of every element."""
    return [cls._from_raw_copy(e) for e in arr]


def message_array_set(arr, cls, values, length: int, field: str) -> None:
    temps: list = []
    try:
        items = [
            _as_message(cls, v, f"{field}[{i}]", temps)
            for i, v in enumerate(_as_list(values, field))
        ]
        _check_length(len(items), length, field)
        for elem, item in zip(arr, items):
            cls._assign_raw(elem, item._raw)
    finally:
        _destroy_all(temps)


def message_array_fini(arr, cls) -> None:
    for elem in arr:
        cls._fini_raw(elem)


def message_array_copy(src, dst, cls) -> None:
    try:
        for s, d in zip(src, dst):
            cls._copy_raw(s, d)
    except BaseException:
        message_array_fini(dst, cls)
        raise


def message_array_adopt(arr, cls) -> None:
    for elem in arr:
        cls._adopt_raw(elem)


# ----------------------------------------------------------------------
# Nested messages in place
# ----------------------------------------------------------------------


def message_get(raw, cls, parent):
    """A view of the nested value; it stays owned by ``parent``."""
    return cls._view(raw, parent)


def message_set(raw, cls, value, field: str) -> None:
    temps: list = []
    try:
        item = _as_message(cls, value, field, temps)
        cls._assign_raw(raw, item._raw)
    finally:
        _destroy_all(temps)


def message_fini(raw, cls) -> None:
    cls._fini_raw(raw)


def message_copy(src, dst, cls) -> None:
    cls._copy_raw(src, dst)


def message_adopt(raw, cls) -> None:
    cls._adopt_raw(raw)
