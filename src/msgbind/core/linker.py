"""
Two-phase linking of schema files.

Pass 1 registers every message name and parses every file; pass 2
resolves field types against the completed symbol table. Resolution
runs on a thread pool once the table is frozen.
"""

import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path

from . import ir
from .errors import MsgbindError
from .linker_impl import SymbolTable, check_containment_cycles
from .parser import parse_schema_file, schema_identity
from .resolver import resolve_schema

logger = logging.getLogger(__name__)


@dataclass
class SchemaUnit:
    """
    One schema file moving through the compiler.

    Attributes:
        package: Package the schema belongs to
        path: Schema file path
        generate: False for dependency schemas (resolved, never emitted)
        name: Schema name derived from the path
        kind: Message or service
        schema: Parsed file, once pass 1 succeeded
        spec: Resolved spec, once pass 2 succeeded
        errors: Every error attributed to this file
        skipped: True when a dependency failed and the unit was not emitted
    """

    package: str
    path: Path
    generate: bool = True
    name: str = ""
    kind: ir.SchemaKind | None = None
    schema: ir.SchemaFile | None = None
    spec: ir.MessageSpec | ir.ServiceSpec | None = None
    errors: list[MsgbindError] = field(default_factory=list)
    skipped: bool = False

    @property
    def qualified_name(self) -> str:
        return f"{self.package}/{self.name or self.path.stem}"

    @property
    def failed(self) -> bool:
        return bool(self.errors)

    @property
    def messages(self) -> list[ir.MessageSpec]:
        if isinstance(self.spec, ir.ServiceSpec):
            return self.spec.messages
        if isinstance(self.spec, ir.MessageSpec):
            return [self.spec]
        return []


@dataclass
class LinkResult:
    """Outcome of linking: the filled symbol table plus every unit."""

    symbols: SymbolTable
    units: list[SchemaUnit]
    failed_messages: set[str] = field(default_factory=set)

    @property
    def errors(self) -> list[MsgbindError]:
        return [e for unit in self.units for e in unit.errors]


def register_units(units: list[SchemaUnit], symbols: SymbolTable) -> dict[str, SchemaUnit]:
    """
    Pass 1a: register the names each unit defines, before parsing anything.

    Returns:
        Mapping of registered message name to owning unit
    """
    owners: dict[str, SchemaUnit] = {}
    for unit in units:
        try:
            unit.name, unit.kind = schema_identity(unit.path)
            entries = symbols.register_schema(unit.package, unit.name, unit.kind, unit.path)
        except MsgbindError as e:
            unit.errors.append(e)
            continue
        for entry in entries:
            owners[entry.qualified_name] = unit
    return owners


def parse_units(units: list[SchemaUnit]) -> None:
    """Pass 1b: read and parse every registered unit, collecting errors."""
    for unit in units:
        if unit.failed:
            continue
        try:
            unit.schema = parse_schema_file(unit.path, unit.package)
        except MsgbindError as e:
            unit.errors.append(e)


def _resolve_unit(symbols: SymbolTable, unit: SchemaUnit) -> SchemaUnit:
    spec, errors = resolve_schema(symbols, unit.schema)
    unit.spec = spec
    unit.errors.extend(errors)
    return unit


def resolve_units(symbols: SymbolTable, units: list[SchemaUnit], jobs: int = 1) -> None:
    """
    Pass 2: resolve every parsed unit against the frozen symbol table.

    Each unit only reads the table and writes to itself, so units are
    independent work items.
    """
    pending = [u for u in units if u.schema is not None and not u.failed]
    if jobs <= 1 or len(pending) <= 1:
        for unit in pending:
            _resolve_unit(symbols, unit)
        return

    max_workers = min(jobs, len(pending))
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {executor.submit(_resolve_unit, symbols, unit): unit for unit in pending}
        for future in as_completed(futures):
            unit = future.result()
            logger.debug("Resolved %s (%d error(s))", unit.qualified_name, len(unit.errors))


def failed_dependencies(
    spec: ir.MessageSpec, symbols: SymbolTable, failed: set[str]
) -> list[str]:
    """Failed messages that ``spec`` references, directly or transitively."""
    found: list[str] = []
    seen = {spec.qualified_name}
    queue = [ref.qualified_name for ref in spec.nested_references()]
    while queue:
        name = queue.pop(0)
        if name in seen:
            continue
        seen.add(name)
        if name in failed:
            found.append(name)
            continue
        nested = symbols.resolved(name)
        if nested is not None:
            queue.extend(ref.qualified_name for ref in nested.nested_references())
    return sorted(found)


def link_schemas(
    package: str,
    paths: Iterable[Path],
    dependencies: dict[str, list[Path]] | None = None,
    jobs: int = 1,
) -> LinkResult:
    """
    Parse and resolve a set of schema files.

    Performs:
    1. Name registration for every input and dependency schema
    2. Parsing (sequential)
    3. Barrier: the symbol table is frozen
    4. Type resolution (parallel when jobs > 1)
    5. Filling the symbol table and detecting in-place containment cycles

    Args:
        package: Package of the schemas to generate
        paths: Schema file paths, in invocation order
        dependencies: Other packages' schemas, resolvable but not generated
        jobs: Worker threads for resolution

    Returns:
        LinkResult; errors are collected on the units, never raised
    """
    units = [SchemaUnit(package=package, path=Path(p)) for p in paths]
    for dep_package, dep_paths in sorted((dependencies or {}).items()):
        units.extend(
            SchemaUnit(package=dep_package, path=Path(p), generate=False) for p in dep_paths
        )

    symbols = SymbolTable()
    owners = register_units(units, symbols)
    parse_units(units)
    symbols.freeze()
    logger.debug("Registered %d message name(s) from %d schema(s)", len(owners), len(units))

    resolve_units(symbols, units, jobs)

    failed: set[str] = set()
    for unit in units:
        for spec in unit.messages:
            symbols.fill(spec)
        if unit.failed:
            failed.update(name for name, owner in owners.items() if owner is unit)

    members, cycle_errors = check_containment_cycles(symbols)
    for error in cycle_errors:
        owners[error.context.schema].errors.append(error)
    failed.update(members)

    return LinkResult(symbols=symbols, units=units, failed_messages=failed)
