"""
Python/ctypes binding emitter.

Generates one module per message and one per service. Each message
becomes a ``ctypes.Structure`` mirroring the C layout plus a wrapper
class derived from ``msgbind.runtime.Message`` whose lifecycle hooks
are built from the layout plan:

- ``_init_raw``: declared defaults
- ``_fini_raw``: release in field order, per discipline
- ``_copy_raw``: deep copy, per discipline
- ``_adopt_raw``: take ownership of foreign buffers, per discipline

Messages embedded in place are imported at module level (in-place
containment is acyclic). Messages referenced only through sequences are
imported inside the methods that use them, so mutually referencing
modules never import each other at load time.
"""

from __future__ import annotations

import keyword
from pathlib import PurePosixPath

from ..core import ir
from ..core.errors import EmitError, MsgbindError, with_context
from ..layout import (
    Container,
    Discipline,
    ElementKind,
    FieldPlan,
    LayoutPlanner,
    MessagePlan,
    MessageRef,
)
from .generator import GeneratedFile, Generator, GeneratorResult

GENERATED_HEADER = "# Generated by msgbind from {source}. Do not edit."

PRIMITIVE_CTYPE_NAMES = {
    "bool": "ctypes.c_bool",
    "int8": "ctypes.c_int8",
    "uint8": "ctypes.c_uint8",
    "int16": "ctypes.c_int16",
    "uint16": "ctypes.c_uint16",
    "int32": "ctypes.c_int32",
    "uint32": "ctypes.c_uint32",
    "int64": "ctypes.c_int64",
    "uint64": "ctypes.c_uint64",
    "float32": "ctypes.c_float",
    "float64": "ctypes.c_double",
}

# Module-level names of every generated module.
MODULE_GLOBALS = frozenset({"ctypes", "rt"})

# A C struct may not be empty; the C bindings add the same placeholder member.
PLACEHOLDER_MEMBER = "structure_needs_at_least_one_member"

INDENT = "    "


def check_names(plan: MessagePlan) -> None:
    """
    Reject names that cannot be emitted.

    Raises:
        EmitError: For a reserved class name, a leading underscore, or two
            names that collide after keyword mangling
    """

    def fail(message: str) -> EmitError:
        return with_context(EmitError, message, file=plan.file, schema=plan.qualified_name)

    if plan.name in MODULE_GLOBALS or keyword.iskeyword(plan.name):
        raise fail(f"Message name '{plan.name}' is reserved in generated modules")

    seen: dict[str, str] = {}
    for name, attr in [(f.name, f.attr) for f in plan.fields] + [
        (c.name, c.attr) for c in plan.constants
    ]:
        if name.startswith("_"):
            raise fail(
                f"'{plan.qualified_name}.{name}': names starting with '_' are reserved "
                f"by generated wrappers"
            )
        if attr in seen:
            raise fail(
                f"'{plan.qualified_name}': '{name}' and '{seen[attr]}' both map to "
                f"attribute '{attr}'"
            )
        seen[attr] = name


class MessageEmitter:
    """
    Emits the raw struct and wrapper class of one message.

    Args:
        plan: Layout plan of the message
        module: Dotted path of the module being generated
        imported: Qualified names imported at module level
    """

    def __init__(self, plan: MessagePlan, module: str, imported: set[str]):
        self.plan = plan
        self.module = module
        self.imported = imported

    # ------------------------------------------------------------------
    # Name expressions
    # ------------------------------------------------------------------

    def is_local(self, ref: MessageRef) -> bool:
        return ref.module == self.module

    def class_expr(self, ref: MessageRef) -> str:
        return ref.class_name if self.is_local(ref) else ref.alias

    def raw_expr(self, ref: MessageRef) -> str:
        if self.is_local(ref):
            return ref.struct_name
        return f"{ref.alias}._raw_type_"

    def element_ctype(self, f: FieldPlan) -> str:
        if f.element_kind == ElementKind.PRIMITIVE:
            return PRIMITIVE_CTYPE_NAMES[f.primitive]
        if f.element_kind == ElementKind.TEXT:
            return "rt.String"
        return self.raw_expr(f.message)

    def field_ctype(self, f: FieldPlan) -> str:
        if f.container == Container.ARRAY:
            return f"{self.element_ctype(f)} * {f.length}"
        if f.container == Container.SEQUENCE:
            return "rt.Sequence"
        return self.element_ctype(f)

    def label(self, f: FieldPlan) -> str:
        return f"{self.plan.name}.{f.name}"

    # ------------------------------------------------------------------
    # Per-field operations
    # ------------------------------------------------------------------

    def getter(self, f: FieldPlan) -> str:
        raw = f"self._raw.{f.attr}"
        family = f.family
        if family == "scalar":
            return raw
        if family == "sequence":
            return f'rt.sequence_get({raw}, "{f.primitive}")'
        if family == "message":
            return f"rt.message_get({raw}, {self.class_expr(f.message)}, self)"
        if f.element_kind == ElementKind.MESSAGE:
            return f"rt.{family}_get({raw}, {self.class_expr(f.message)})"
        return f"rt.{family}_get({raw})"

    def setter(self, f: FieldPlan, target: str, value: str) -> str:
        """Statement storing ``value`` into the field of raw struct ``target``."""
        raw = f"{target}.{f.attr}"
        label = f'"{self.label(f)}"'
        family = f.family
        if family == "scalar":
            return f'{raw} = rt.check_primitive("{f.primitive}", {value}, {label})'
        if family == "text":
            return f"rt.text_set({raw}, {value}, {f.text_bound}, {label})"
        if family == "message":
            return f"rt.message_set({raw}, {self.class_expr(f.message)}, {value}, {label})"
        if family == "array":
            return f'rt.array_set({raw}, "{f.primitive}", {value}, {f.length}, {label})'
        if family == "text_array":
            return f"rt.text_array_set({raw}, {value}, {f.length}, {f.text_bound}, {label})"
        if family == "message_array":
            cls = self.class_expr(f.message)
            return f"rt.message_array_set({raw}, {cls}, {value}, {f.length}, {label})"
        if family == "sequence":
            return f'rt.sequence_set({raw}, "{f.primitive}", {value}, {f.bound}, {label})'
        if family == "text_sequence":
            return f"rt.text_sequence_set({raw}, {value}, {f.bound}, {f.text_bound}, {label})"
        if family == "message_sequence":
            cls = self.class_expr(f.message)
            return f"rt.message_sequence_set({raw}, {cls}, {value}, {f.bound}, {label})"
        raise EmitError(f"No setter for field family '{family}'")

    def init_line(self, f: FieldPlan) -> str | None:
        if f.default is None:
            return None
        if f.family == "scalar":
            return f"raw.{f.attr} = {f.default!r}"
        return self.setter(f, "raw", repr(f.default))

    def fini_line(self, f: FieldPlan) -> str | None:
        raw = f"raw.{f.attr}"
        if f.discipline == Discipline.IN_PLACE:
            return None
        if f.discipline == Discipline.SINGLE_BUFFER:
            op = "text_fini" if f.family == "text" else "buffer_fini"
            return f"rt.{op}({raw})"
        if f.element_kind == ElementKind.MESSAGE:
            return f"rt.{f.family}_fini({raw}, {self.class_expr(f.message)})"
        return f"rt.{f.family}_fini({raw})"

    def copy_line(self, f: FieldPlan) -> str:
        src, dst = f"src.{f.attr}", f"dst.{f.attr}"
        if f.discipline == Discipline.IN_PLACE:
            return f"{dst} = {src}"
        if f.discipline == Discipline.SINGLE_BUFFER:
            if f.family == "text":
                return f"rt.text_copy({src}, {dst})"
            return f"rt.buffer_copy({src}, {dst}, ctypes.sizeof({self.element_ctype(f)}))"
        if f.element_kind == ElementKind.MESSAGE:
            return f"rt.{f.family}_copy({src}, {dst}, {self.class_expr(f.message)})"
        return f"rt.{f.family}_copy({src}, {dst})"

    def adopt_line(self, f: FieldPlan) -> str | None:
        raw = f"raw.{f.attr}"
        if f.discipline == Discipline.IN_PLACE:
            return None
        if f.discipline == Discipline.SINGLE_BUFFER:
            return f"rt.buffer_adopt({raw})"
        if f.element_kind == ElementKind.MESSAGE:
            return f"rt.{f.family}_adopt({raw}, {self.class_expr(f.message)})"
        return f"rt.{f.family}_adopt({raw})"

    # ------------------------------------------------------------------
    # Methods
    # ------------------------------------------------------------------

    def local_imports(self, statements: list[tuple[FieldPlan, str]]) -> list[str]:
        """Imports of messages that ``statements`` use but the module does not import."""
        refs: dict[str, MessageRef] = {}
        for f, statement in statements:
            ref = f.message
            if ref is None or self.is_local(ref) or ref.qualified_name in self.imported:
                continue
            if ref.alias not in statement:
                continue
            refs.setdefault(ref.qualified_name, ref)
        return [
            f"from {ref.module} import {ref.class_name} as {ref.alias}"
            for ref in sorted(refs.values(), key=lambda r: r.qualified_name)
        ]

    def method(
        self, signature: str, statements: list[tuple[FieldPlan, str]], decorator: str | None
    ) -> list[str]:
        lines = []
        if decorator:
            lines.append(f"{INDENT}{decorator}")
        lines.append(f"{INDENT}def {signature}:")
        body = self.local_imports(statements) + [s for _, s in statements]
        for statement in body or ["pass"]:
            lines.append(f"{INDENT * 2}{statement}")
        lines.append("")
        return lines

    def hook(self, name: str, args: str, line_for) -> list[str]:
        statements = []
        for f in self.plan.fields:
            statement = line_for(f)
            if statement is not None:
                statements.append((f, statement))
        return self.method(f"{name}({args})", statements, "@staticmethod")

    def property_lines(self, f: FieldPlan) -> list[str]:
        doc = f"{f.type_token}: {f.comment}" if f.comment else f.type_token
        lines = [
            f"{INDENT}@property",
            f"{INDENT}def {f.attr}(self):",
            f"{INDENT * 2}{doc!r}",
        ]
        getter = self.getter(f)
        lines += [f"{INDENT * 2}{s}" for s in self.local_imports([(f, getter)])]
        lines += [f"{INDENT * 2}return {getter}", ""]
        lines += self.method(
            f"{f.attr}(self, value)",
            [(f, self.setter(f, "self._raw", "value"))],
            f"@{f.attr}.setter",
        )
        return lines

    # ------------------------------------------------------------------
    # Classes
    # ------------------------------------------------------------------

    def struct_lines(self) -> list[str]:
        plan = self.plan
        lines = [
            f"class {plan.struct_name}(ctypes.Structure):",
            f'{INDENT}"""Raw C layout of {plan.qualified_name}."""',
            "",
            f"{INDENT}_fields_ = [",
        ]
        if not plan.fields:
            lines.append(f'{INDENT * 2}("{PLACEHOLDER_MEMBER}", ctypes.c_uint8),')
        for f in plan.fields:
            entry = f'{INDENT * 2}("{f.attr}", {self.field_ctype(f)}),'
            if f.comment:
                entry += f"  # {f.comment}"
            lines.append(entry)
        lines.append(f"{INDENT}]")
        return lines

    def wrapper_lines(self) -> list[str]:
        plan = self.plan
        names = "".join(f'"{f.attr}", ' for f in plan.fields)
        if len(plan.fields) == 1:
            field_names = f"({names.rstrip()})"
        else:
            field_names = f"({names.rstrip(', ')})"

        lines = [
            f"class {plan.name}(rt.Message):",
            f'{INDENT}"""{plan.qualified_name}."""',
            "",
            f"{INDENT}__slots__ = ()",
            "",
            f"{INDENT}_raw_type_ = {plan.struct_name}",
            f'{INDENT}_type_name_ = "{plan.qualified_name}"',
            f"{INDENT}_field_names_ = {field_names}",
            "",
        ]

        if plan.constants:
            for c in plan.constants:
                line = f"{INDENT}{c.attr} = {c.value!r}"
                if c.comment:
                    line += f"  # {c.comment}"
                lines.append(line)
            lines.append("")

        lines += self.hook("_init_raw", "raw", self.init_line)
        lines += self.hook("_fini_raw", "raw", self.fini_line)
        lines += self.hook("_copy_raw", "src, dst", self.copy_line)
        lines += self.hook("_adopt_raw", "raw", self.adopt_line)

        for f in plan.fields:
            lines += self.property_lines(f)

        while lines and lines[-1] == "":
            lines.pop()
        return lines

    def emit(self) -> list[str]:
        check_names(self.plan)
        return self.struct_lines() + ["", ""] + self.wrapper_lines()


# ----------------------------------------------------------------------
# Modules
# ----------------------------------------------------------------------


def _module_imports(plans: list[MessagePlan], module: str) -> tuple[list[str], set[str]]:
    refs: dict[str, MessageRef] = {}
    for plan in plans:
        for ref in plan.in_place_dependencies():
            if ref.module != module:
                refs.setdefault(ref.qualified_name, ref)
    ordered = sorted(refs.values(), key=lambda r: (r.module, r.class_name))
    lines = [f"from {ref.module} import {ref.class_name} as {ref.alias}" for ref in ordered]
    return lines, set(refs)


def _render_module(
    source: str, docstring: str, plans: list[MessagePlan], module: str, extra: list[str]
) -> list[str]:
    imports, imported = _module_imports(plans, module)
    exported = sorted(
        [p.name for p in plans] + [p.struct_name for p in plans] + extra,
    )

    lines = [
        GENERATED_HEADER.format(source=source),
        f'"""{docstring}"""',
        "",
        "import ctypes",
        "",
        "from msgbind import runtime as rt",
    ]
    lines += imports
    lines += ["", "__all__ = ["]
    lines += [f'{INDENT}"{name}",' for name in exported]
    lines.append("]")

    for plan in plans:
        lines += ["", ""]
        lines += MessageEmitter(plan, module, imported).emit()
    return lines


def emit_message_module(plan: MessagePlan, source: str) -> str:
    """
    Generate the module of one message.

    Args:
        plan: Layout plan of the message
        source: Relative schema path for the header (``demo/msg/Sample.msg``)
    """
    lines = _render_module(source, f"{plan.qualified_name} message.", [plan], plan.module, [])
    return "\n".join(lines) + "\n"


def emit_service_module(
    service: str, request: MessagePlan, response: MessagePlan, source: str
) -> str:
    """
    Generate the module of one service: both halves and a ``Service`` namespace.

    The request is emitted first unless it embeds the response in place.

    Raises:
        EmitError: For a service name that shadows a module-level name
    """
    qualified = f"{request.package}/{service}"
    if service in MODULE_GLOBALS or keyword.iskeyword(service):
        raise with_context(
            EmitError,
            f"Service name '{service}' is reserved in generated modules",
            file=request.file,
            schema=qualified,
        )

    plans = [request, response]
    if response.qualified_name in {r.qualified_name for r in request.in_place_dependencies()}:
        plans = [response, request]

    lines = _render_module(source, f"{qualified} service.", plans, request.module, [service])
    lines += [
        "",
        "",
        f"class {service}:",
        f'{INDENT}"""{qualified} request/response pair."""',
        "",
        f"{INDENT}Request = {request.name}",
        f"{INDENT}Response = {response.name}",
    ]
    return "\n".join(lines) + "\n"


def emit_namespace_init(package: str, namespace: str, exports: dict[str, list[str]]) -> str:
    """
    Generate ``<package>/<namespace>/__init__.py`` re-exporting every module.

    Args:
        exports: Module stem to exported class names
    """
    kind = "message" if namespace == "msg" else "service"
    lines = [
        GENERATED_HEADER.format(source=f"{package} {kind} schemas"),
        f'"""{package} {kind} bindings."""',
        "",
    ]
    for stem in sorted(exports):
        names = ", ".join(sorted(exports[stem]))
        lines.append(f"from .{stem} import {names}")
    return "\n".join(lines) + "\n"


def emit_package_init(package: str) -> str:
    lines = [
        GENERATED_HEADER.format(source=f"{package} schemas"),
        f'"""{package} interface bindings."""',
    ]
    return "\n".join(lines) + "\n"


# ----------------------------------------------------------------------
# Generator
# ----------------------------------------------------------------------


class BindingGenerator(Generator):
    """
    Generates the module of one message or service.

    Layout and emission errors are fatal for the schema and are returned
    in the result instead of being raised.
    """

    def __init__(self, spec: ir.MessageSpec | ir.ServiceSpec, planner: LayoutPlanner):
        self.spec = spec
        self.planner = planner

    def source_name(self, namespace: str) -> str:
        spec = self.spec
        file_name = spec.file.name if spec.file else f"{spec.name}.{namespace}"
        return f"{spec.package}/{namespace}/{file_name}"

    def generate(self) -> GeneratorResult:
        result = GeneratorResult()
        spec = self.spec
        try:
            if isinstance(spec, ir.ServiceSpec):
                request = self.planner.plan_message(spec.request)
                response = self.planner.plan_message(spec.response)
                content = emit_service_module(
                    spec.name, request, response, self.source_name("srv")
                )
                path = PurePosixPath(spec.package, "srv", f"{request.module_name}.py")
            else:
                plan = self.planner.plan_message(spec)
                content = emit_message_module(plan, self.source_name("msg"))
                path = PurePosixPath(spec.package, "msg", f"{plan.module_name}.py")
        except MsgbindError as e:
            result.add_error(e)
            return result

        result.add_file(GeneratedFile(path=path, content=content, schema=spec.qualified_name))
        return result
