"""Primitive kinds of generated wrappers: C types and value checks."""

import ctypes
import math
import operator

FLOAT32_MAX = 3.4028234663852886e38

PRIMITIVE_CTYPES: dict[str, type] = {
    "bool": ctypes.c_bool,
    "int8": ctypes.c_int8,
    "uint8": ctypes.c_uint8,
    "int16": ctypes.c_int16,
    "uint16": ctypes.c_uint16,
    "int32": ctypes.c_int32,
    "uint32": ctypes.c_uint32,
    "int64": ctypes.c_int64,
    "uint64": ctypes.c_uint64,
    "float32": ctypes.c_float,
    "float64": ctypes.c_double,
}


def _integer_range(kind: str) -> tuple[int, int]:
    bits = ctypes.sizeof(PRIMITIVE_CTYPES[kind]) * 8
    if kind.startswith("u"):
        return 0, (1 << bits) - 1
    return -(1 << (bits - 1)), (1 << (bits - 1)) - 1


INTEGER_RANGES: dict[str, tuple[int, int]] = {
    kind: _integer_range(kind) for kind in PRIMITIVE_CTYPES if "int" in kind
}


def check_primitive(kind: str, value, field: str):
    """
    Validate a value for a primitive field and return it normalized.

    Raises:
        TypeError: Wrong Python type for the kind
        OverflowError: Integer outside the kind's range, or float32 overflow
    """
    if kind == "bool":
        if isinstance(value, bool):
            return value
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        raise TypeError(f"{field}: expected bool, got {type(value).__name__}")

    if kind in INTEGER_RANGES:
        try:
            number = operator.index(value)
        except TypeError:
            raise TypeError(f"{field}: expected int, got {type(value).__name__}") from None
        low, high = INTEGER_RANGES[kind]
        if not low <= number <= high:
            raise OverflowError(f"{field}: {number} out of range for {kind} [{low}, {high}]")
        return number

    if isinstance(value, (str, bytes)):
        raise TypeError(f"{field}: expected float, got {type(value).__name__}")
    try:
        number = float(value)
    except TypeError:
        raise TypeError(f"{field}: expected float, got {type(value).__name__}") from None
    if kind == "float32" and math.isfinite(number) and abs(number) > FLOAT32_MAX:
        raise OverflowError(f"{field}: {number} out of range for float32")
    return number
