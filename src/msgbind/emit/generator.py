"""
Base generator classes for binding generation.

A generator turns planned messages into source files. Files are kept in
memory as ``GeneratedFile`` objects, keyed by their path relative to the
output directory, so callers decide whether and when to write them.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from ..core.errors import MsgbindError, SchemaIOError, with_context

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeneratedFile:
    """
    One generated source file.

    Attributes:
        path: Path relative to the output directory, ``/``-separated
        content: Complete file text
        schema: Qualified schema name the file was generated from, if any
    """

    path: PurePosixPath
    content: str
    schema: str | None = None


@dataclass
class GeneratorResult:
    """
    Result from a generator execution.

    Attributes:
        files: Generated files, in generation order
        errors: Errors that made a message or service fail
        warnings: Messages for the user that did not fail anything
    """

    files: list[GeneratedFile] = field(default_factory=list)
    errors: list[MsgbindError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Whether generation succeeded (no errors)."""
        return len(self.errors) == 0

    def add_file(self, generated: GeneratedFile) -> None:
        self.files.append(generated)

    def add_error(self, error: MsgbindError) -> None:
        self.errors.append(error)

    def add_warning(self, warning: str) -> None:
        self.warnings.append(warning)

    def merge(self, other: "GeneratorResult") -> None:
        """Merge another result into this one."""
        self.files.extend(other.files)
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)


class Generator(ABC):
    """Base class for all generators."""

    @abstractmethod
    def generate(self) -> GeneratorResult:
        """
        Generate files.

        Returns:
            GeneratorResult with generated files and collected errors
        """
        pass


def write_files(files: list[GeneratedFile], output_dir: Path) -> list[Path]:
    """
    Write generated files below ``output_dir`` in sorted path order.

    Raises:
        SchemaIOError: If a file or directory cannot be written
    """
    written = []
    for generated in sorted(files, key=lambda f: f.path):
        path = output_dir.joinpath(*generated.path.parts)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8", newline="\n") as f:
                f.write(generated.content)
        except OSError as e:
            raise with_context(SchemaIOError, f"Cannot write output: {e}", file=path) from e
        logger.debug("Wrote %s", path)
        written.append(path)
    return written
