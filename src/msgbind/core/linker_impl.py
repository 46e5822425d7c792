"""
Linker implementation for msgbind.

Handles symbol table building and containment cycle detection across
every schema of an invocation.
"""

from dataclasses import dataclass, field
from pathlib import Path

from . import ir
from .errors import CyclicTypeError, DuplicateDefinitionError, MsgbindError, with_context


@dataclass
class SymbolEntry:
    """
    One registered message name.

    ``spec`` is a placeholder until pass 2 resolves the owning schema.
    """

    package: str
    name: str
    namespace: str
    file: Path
    schema: str
    spec: ir.MessageSpec | None = None

    @property
    def qualified_name(self) -> str:
        return f"{self.package}/{self.name}"


@dataclass
class SymbolTable:
    """
    Package-qualified registry of every message name of one invocation.

    Built in pass 1 (``register_schema``), frozen before resolution,
    then filled with resolved specs by the thread that owns it.
    """

    entries: dict[str, SymbolEntry] = field(default_factory=dict)
    frozen: bool = False

    def register(self, entry: SymbolEntry) -> None:
        """Add a message name, checking for duplicates."""
        self._check_new(entry)
        self.entries[entry.qualified_name] = entry

    def _check_new(self, entry: SymbolEntry) -> None:
        if self.frozen:
            raise RuntimeError("Symbol table is frozen; register schemas before resolution")
        existing = self.entries.get(entry.qualified_name)
        if existing is not None:
            raise with_context(
                DuplicateDefinitionError,
                f"Duplicate message '{entry.qualified_name}' defined in "
                f"'{existing.file}' and '{entry.file}'",
                file=entry.file,
                schema=entry.schema,
            )

    def register_schema(
        self, package: str, name: str, kind: ir.SchemaKind, path: Path
    ) -> list[SymbolEntry]:
        """
        Register the message names a schema file defines.

        A message file defines ``package/Name``; a service file defines
        ``package/Name_Request`` and ``package/Name_Response``.
        """
        schema = f"{package}/{name}"
        if kind == ir.SchemaKind.MESSAGE:
            names = [(name, "msg")]
        else:
            names = [(f"{name}_Request", "srv"), (f"{name}_Response", "srv")]

        entries = [
            SymbolEntry(package=package, name=n, namespace=ns, file=path, schema=schema)
            for n, ns in names
        ]
        # a service registers both halves or neither
        for entry in entries:
            self._check_new(entry)
        for entry in entries:
            self.entries[entry.qualified_name] = entry
        return entries

    def freeze(self) -> None:
        self.frozen = True

    def lookup(self, qualified_name: str) -> SymbolEntry | None:
        return self.entries.get(qualified_name)

    def fill(self, spec: ir.MessageSpec) -> None:
        """Attach a resolved spec to its placeholder entry."""
        entry = self.entries.get(spec.qualified_name)
        if entry is None:
            raise KeyError(f"'{spec.qualified_name}' was never registered")
        entry.spec = spec

    def resolved(self, qualified_name: str) -> ir.MessageSpec | None:
        entry = self.entries.get(qualified_name)
        return entry.spec if entry else None

    def resolved_specs(self) -> dict[str, ir.MessageSpec]:
        return {name: e.spec for name, e in sorted(self.entries.items()) if e.spec is not None}


def in_place_references(spec: ir.MessageSpec) -> list[tuple[ir.FieldSpec, str]]:
    """Fields that embed another message in place, with the embedded message name."""
    refs = []
    for f in spec.fields:
        t = f.type
        if isinstance(t, ir.FixedArrayType):
            t = t.element
        if isinstance(t, ir.NestedType):
            refs.append((f, t.qualified_name))
    return refs


def find_containment_cycles(
    specs: dict[str, ir.MessageSpec],
) -> list[tuple[list[str], ir.FieldSpec]]:
    """
    Find cycles of in-place containment between messages.

    Sequences break containment (their elements live in a separate
    buffer), so only plain nested fields and fixed arrays count.

    Returns:
        A list of (cycle, first_field) pairs where ``cycle`` lists the
        qualified message names in containment order.
    """
    WHITE, GREY, BLACK = 0, 1, 2
    colour = {name: WHITE for name in specs}
    stack: list[tuple[str, ir.FieldSpec]] = []
    cycles: list[tuple[list[str], ir.FieldSpec]] = []

    def visit(name: str) -> None:
        colour[name] = GREY
        for f, target in in_place_references(specs[name]):
            if target not in specs:
                continue
            if colour[target] == GREY:
                names = [n for n, _ in stack] + [name]
                start = names.index(target)
                cycle = names[start:]
                fields = [fld for _, fld in stack][start:] + [f]
                cycles.append((cycle, fields[0]))
            elif colour[target] == WHITE:
                stack.append((name, f))
                visit(target)
                stack.pop()
        colour[name] = BLACK

    for name in sorted(specs):
        if colour[name] == WHITE:
            visit(name)
    return cycles


def check_containment_cycles(
    symbols: SymbolTable,
) -> tuple[set[str], list[MsgbindError]]:
    """
    Report every in-place containment cycle as a CyclicTypeError.

    Returns:
        (qualified names of messages on a cycle, errors)
    """
    specs = symbols.resolved_specs()
    members: set[str] = set()
    errors: list[MsgbindError] = []

    for cycle, first_field in find_containment_cycles(specs):
        members.update(cycle)
        owner = specs[cycle[0]]
        path = " -> ".join(cycle + [cycle[0]])
        errors.append(
            with_context(
                CyclicTypeError,
                f"Messages contain each other in place: {path} "
                f"(field '{first_field.name}'); use a sequence to break the cycle",
                file=owner.file,
                line=first_field.line,
                schema=owner.qualified_name,
            )
        )
    return members, errors
