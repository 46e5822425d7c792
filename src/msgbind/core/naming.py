"""
Naming rules for generated bindings.

Provides the transformations from schema names to Python module, class,
attribute and C struct names.
"""

from __future__ import annotations

import keyword
import re

# Members of the generated wrapper base class and builtins its class body
# uses as decorators; a field or constant with one of these names gets a
# trailing underscore.
WRAPPER_MEMBERS = frozenset(
    {
        "clone",
        "destroy",
        "fini_raw",
        "from_raw",
        "is_view",
        "property",
        "staticmethod",
        "to_dict",
        "to_raw",
    }
)

SERVICE_SUFFIXES = ("_Request", "_Response")


def snake_case(name: str) -> str:
    """
    Convert a CamelCase schema name to a snake_case module name.

    Examples:
        >>> snake_case("Sample")
        'sample'
        >>> snake_case("HTTPRequest")
        'http_request'
        >>> snake_case("PointCloud2")
        'point_cloud2'
    """
    value = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", name)
    value = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", value)
    return value.lower()


def python_name(name: str) -> str:
    """Attribute name for a field or constant (``class`` -> ``class_``)."""
    if keyword.iskeyword(name) or name in WRAPPER_MEMBERS:
        return f"{name}_"
    return name


def module_name(name: str) -> str:
    """File stem of the module generated for a message or service."""
    stem = snake_case(name)
    if keyword.iskeyword(stem):
        return f"{stem}_"
    return stem


def c_struct_name(package: str, namespace: str, name: str) -> str:
    """C struct name of a message: ``demo__msg__Sample``."""
    return f"{package}__{namespace}__{name}"


def service_of(name: str) -> str:
    """Service name of a request or response half (``Add_Request`` -> ``Add``)."""
    for suffix in SERVICE_SUFFIXES:
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name


def module_path(package: str, namespace: str, name: str) -> str:
    """
    Dotted import path of the module defining a message.

    Service halves live in the module of their service.
    """
    if namespace == "srv":
        name = service_of(name)
    return f"{package}.{namespace}.{module_name(name)}"


def import_alias(package: str, namespace: str, name: str) -> str:
    """Collision-free alias for a message class imported into another module."""
    return f"_{package}__{namespace}__{name}"
