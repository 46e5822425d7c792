"""
Compiler entry point.

Runs the full pipeline for one package:

1. Pass 1: register names and parse every schema (sequential)
2. Pass 2: resolve types against the frozen symbol table (parallel)
3. Link: fill the symbol table, reject in-place containment cycles
4. Pass 3: plan layouts and emit modules (parallel)
5. Write the generated files in sorted order

Errors never abort sibling schemas; they are collected on the result.
"""

import keyword
import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from .core import ir
from .core.config import CompilerConfig
from .core.errors import CompilationError, MsgbindError, NameCollisionError, with_context
from .core.linker import SchemaUnit, failed_dependencies, link_schemas
from .core.linker_impl import SymbolTable
from .emit import (
    BindingGenerator,
    GeneratedFile,
    GeneratorResult,
    emit_namespace_init,
    emit_package_init,
    write_files,
)
from .layout import LayoutPlanner

logger = logging.getLogger(__name__)


@dataclass
class CompilationResult:
    """
    Outcome of one compiler invocation.

    Attributes:
        files: Every generated file (written or not)
        errors: Every collected error, in input order
        units: Per-schema state, in input order (dependencies last)
        written: Paths actually written to disk
        warnings: Schemas skipped because a dependency failed
    """

    files: list[GeneratedFile] = field(default_factory=list)
    errors: list[MsgbindError] = field(default_factory=list)
    units: list[SchemaUnit] = field(default_factory=list)
    written: list[Path] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True only when no error was collected."""
        return not self.errors

    def raise_for_errors(self) -> None:
        """
        Raises:
            CompilationError: If any error was collected
        """
        if self.errors:
            raise CompilationError(self.errors)

    def file(self, relative: str) -> GeneratedFile | None:
        """Look up a generated file by its ``/``-separated relative path."""
        wanted = PurePosixPath(relative)
        for generated in self.files:
            if generated.path == wanted:
                return generated
        return None


def _exports(spec: ir.MessageSpec | ir.ServiceSpec) -> list[str]:
    if isinstance(spec, ir.ServiceSpec):
        return [spec.name, spec.request.name, spec.response.name]
    return [spec.name]


def _failed_names(units: list[SchemaUnit]) -> set[str]:
    return {m.qualified_name for u in units if u.failed for m in u.messages}


def _skip_dependents(
    units: list[SchemaUnit], symbols: SymbolTable, failed: set[str], warnings: list[str]
) -> None:
    for unit in units:
        if unit.failed or unit.skipped or unit.spec is None:
            continue
        blocked = sorted(
            {name for m in unit.messages for name in failed_dependencies(m, symbols, failed)}
        )
        if blocked:
            unit.skipped = True
            warning = f"Skipping {unit.qualified_name}: depends on failed {', '.join(blocked)}"
            warnings.append(warning)
            logger.warning(warning)


def _generate(unit: SchemaUnit, specs: dict[str, ir.MessageSpec]) -> GeneratorResult:
    return BindingGenerator(unit.spec, LayoutPlanner(specs)).generate()


def generate_units(
    units: list[SchemaUnit], specs: dict[str, ir.MessageSpec], jobs: int = 1
) -> dict[int, GeneratorResult]:
    """
    Pass 3: plan and emit each unit.

    Returns:
        Results keyed by the index of the unit in ``units``
    """
    results: dict[int, GeneratorResult] = {}
    if jobs <= 1 or len(units) <= 1:
        for index, unit in enumerate(units):
            results[index] = _generate(unit, specs)
        return results

    with ThreadPoolExecutor(max_workers=min(jobs, len(units))) as executor:
        futures = {
            executor.submit(_generate, unit, specs): index for index, unit in enumerate(units)
        }
        for future in as_completed(futures):
            results[futures[future]] = future.result()
    return results


def _check_collisions(units: list[SchemaUnit], files: dict[int, GeneratedFile]) -> None:
    """Two schemas may not generate the same module; the later one fails."""
    owners: dict[PurePosixPath, SchemaUnit] = {}
    for index in sorted(files, key=lambda i: (files[i].path, units[i].qualified_name)):
        generated = files[index]
        unit = units[index]
        first = owners.get(generated.path)
        if first is None:
            owners[generated.path] = unit
            continue
        unit.errors.append(
            with_context(
                NameCollisionError,
                f"'{unit.path.name}' and '{first.path.name}' both generate '{generated.path}'",
                file=unit.path,
                schema=unit.qualified_name,
            )
        )
        del files[index]


def _init_files(
    package: str, units: list[SchemaUnit], files: dict[int, GeneratedFile]
) -> list[GeneratedFile]:
    namespaces: dict[str, dict[str, list[str]]] = {}
    for index, generated in files.items():
        namespace = generated.path.parts[1]
        stem = generated.path.stem
        namespaces.setdefault(namespace, {})[stem] = _exports(units[index].spec)

    if not namespaces:
        return []
    init_files = [
        GeneratedFile(
            path=PurePosixPath(package, "__init__.py"),
            content=emit_package_init(package),
        )
    ]
    for namespace, exports in sorted(namespaces.items()):
        init_files.append(
            GeneratedFile(
                path=PurePosixPath(package, namespace, "__init__.py"),
                content=emit_namespace_init(package, namespace, exports),
            )
        )
    return init_files


def compile_interfaces(
    package: str,
    paths: Iterable[Path | str],
    output_dir: Path | str,
    config: CompilerConfig | None = None,
    dependencies: dict[str, list[Path]] | None = None,
) -> CompilationResult:
    """
    Compile the schemas of one package into Python/ctypes bindings.

    Args:
        package: Package name of ``paths``; must be a Python identifier
        paths: ``.msg`` and ``.srv`` files, in invocation order
        output_dir: Root directory receiving ``<package>/msg`` and ``<package>/srv``
        config: Compiler settings (defaults when None)
        dependencies: Extra packages' schemas, resolvable but not generated;
            merged over ``config.dependencies``

    Returns:
        CompilationResult; check ``ok`` or call ``raise_for_errors()``
    """
    config = config or CompilerConfig()
    if not package.isidentifier() or keyword.iskeyword(package):
        raise ValueError(f"Package name '{package}' is not a valid Python identifier")

    deps = dict(config.dependencies)
    deps.update(dependencies or {})
    link = link_schemas(package, [Path(p) for p in paths], deps, config.jobs)
    units = link.units
    specs = link.symbols.resolved_specs()
    result = CompilationResult(units=units)

    # pass 3
    targets = [u for u in units if u.generate]
    _skip_dependents(targets, link.symbols, link.failed_messages, result.warnings)
    emit_units = [u for u in targets if not u.failed and not u.skipped]
    generated = generate_units(emit_units, specs, config.jobs)

    files: dict[int, GeneratedFile] = {}
    for index, unit in enumerate(emit_units):
        outcome = generated[index]
        unit.errors.extend(outcome.errors)
        if outcome.success:
            files[index] = outcome.files[0]

    _check_collisions(emit_units, files)

    # modules importing a schema that failed during emission cannot load
    _skip_dependents(
        emit_units, link.symbols, link.failed_messages | _failed_names(units), result.warnings
    )
    files = {
        i: f for i, f in files.items() if not (emit_units[i].skipped or emit_units[i].failed)
    }

    result.files = [files[i] for i in sorted(files)]
    if config.write_init:
        result.files += _init_files(package, emit_units, files)
    result.errors = [e for unit in units for e in unit.errors]

    if result.ok or config.partial_output:
        try:
            result.written = write_files(result.files, Path(output_dir))
        except MsgbindError as e:
            result.errors.append(e)

    logger.info(
        "Compiled package %s: %d schema(s), %d file(s) written, %d error(s)",
        package,
        len([u for u in units if u.generate]),
        len(result.written),
        len(result.errors),
    )
    return result
