"""Shared pytest fixtures for msgbind tests."""

import importlib
import itertools
import sys
from dataclasses import dataclass
from pathlib import Path

import pytest

from msgbind import CompilationResult, compile_interfaces
from msgbind.core.linker_impl import SymbolTable

_package_ids = itertools.count()

SAMPLE_MSG = "int32 x\nstring name\nint32[3] ids\n"


@dataclass
class GeneratedPackage:
    """A compiled package importable from the test's output directory."""

    name: str
    output_dir: Path
    result: CompilationResult

    def module(self, relative: str):
        return importlib.import_module(f"{self.name}.{relative}")

    def source(self, relative: str) -> str:
        return (self.output_dir / self.name / relative).read_text(encoding="utf-8")


@pytest.fixture
def write_schema(tmp_path: Path):
    """Write a schema file below ``tmp_path/schemas`` and return its path."""

    def _write(relative: str, text: str) -> Path:
        path = tmp_path / "schemas" / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    path = tmp_path / "out"
    path.mkdir()
    return path


@pytest.fixture
def build(write_schema, output_dir: Path, monkeypatch):
    """
    Compile schemas into an importable package.

    Schemas are given as ``{"msg/Sample.msg": "int32 x"}``. Each call uses
    a fresh package name unless one is passed, and every generated module
    is dropped from ``sys.modules`` after the test.
    """
    monkeypatch.syspath_prepend(str(output_dir))
    built: list[str] = []

    def _build(schemas: dict[str, str], package: str | None = None, **kwargs) -> GeneratedPackage:
        package = package or f"gen{next(_package_ids)}"
        paths = [write_schema(f"{package}/{rel}", text) for rel, text in schemas.items()]
        result = compile_interfaces(package, paths, output_dir, **kwargs)
        result.raise_for_errors()
        built.append(package)
        importlib.invalidate_caches()
        return GeneratedPackage(package, output_dir, result)

    yield _build

    for name in list(sys.modules):
        if name.split(".")[0] in built:
            del sys.modules[name]


@pytest.fixture
def sample(build):
    """The ``demo/Sample`` wrapper class."""
    generated = build({"msg/Sample.msg": SAMPLE_MSG}, package="demo")
    return generated.module("msg.sample").Sample


@pytest.fixture
def symbols() -> SymbolTable:
    return SymbolTable()
