"""
Error types for msgbind schema parsing, resolution, layout and emission.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


class MsgbindError(Exception):
    """Base exception for all msgbind errors."""

    def __init__(self, message: str, context: Optional["ErrorContext"] = None):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if self.context:
            return f"{self.context.format()}\n{self.message}"
        return self.message

    @property
    def file(self) -> Path | None:
        return self.context.file if self.context else None

    @property
    def line(self) -> int | None:
        return self.context.line if self.context else None


class SchemaSyntaxError(MsgbindError):
    """
    Raised when schema text cannot be parsed.

    Examples:
    - Malformed declaration line
    - Unterminated string literal
    - Missing or repeated service separator
    """

    pass


class ResolutionError(MsgbindError):
    """Base class for errors raised while resolving a parsed schema."""

    pass


class UnresolvedTypeError(ResolutionError):
    """Raised for an unknown primitive spelling or unknown message reference."""

    pass


class InvalidBoundError(ResolutionError):
    """Raised for a non-positive or unparsable array, sequence or string bound."""

    pass


class CyclicTypeError(ResolutionError):
    """
    Raised when a message contains itself in place.

    Self-reference through a dynamic sequence is legal; through a plain
    field or a fixed array it would require infinite storage.
    """

    pass


class InvalidDefaultError(ResolutionError):
    """Raised when a default or constant literal does not fit its type."""

    pass


class DuplicateFieldError(ResolutionError):
    """Raised when a field or constant name is declared twice in one message."""

    def __init__(
        self,
        message: str,
        context: Optional["ErrorContext"] = None,
        lines: tuple[int, ...] = (),
    ):
        self.lines = lines
        super().__init__(message, context)


class DuplicateDefinitionError(ResolutionError):
    """Raised when two schemas register the same package-qualified name."""

    pass


class SchemaIOError(MsgbindError):
    """Raised when a schema cannot be read or an output file cannot be written."""

    pass


class LayoutError(MsgbindError):
    """Raised when no ABI representation exists for a resolved type."""

    pass


class EmitError(MsgbindError):
    """Raised when source generation fails for a message or service."""

    pass


class NameCollisionError(EmitError):
    """Raised when two schemas would be written to the same output module."""

    pass


class CompilationError(MsgbindError):
    """
    Raised by ``CompilationResult.raise_for_errors`` when an invocation
    collected one or more errors.
    """

    def __init__(self, errors: list[MsgbindError]):
        self.errors = list(errors)
        summary = f"{len(self.errors)} error(s) while compiling interfaces:\n" + "\n".join(
            f"  - {_one_line(e)}" for e in self.errors
        )
        super().__init__(summary)


def _one_line(error: MsgbindError) -> str:
    if error.context:
        return f"{error.context.location()}: {error.message}"
    return error.message


@dataclass
class ErrorContext:
    """
    Context information for an error, including source location.

    Attributes:
        file: Path to the schema file where error occurred
        line: Line number (1-indexed, 0 when the error concerns the whole file)
        column: Column number (1-indexed)
        snippet: Optional source line showing the error location
        schema: Optional package-qualified schema name
    """

    file: Path
    line: int = 0
    column: int = 1
    snippet: str | None = None
    schema: str | None = None

    def location(self) -> str:
        """Short location string like ``Sample.msg:3:7``."""
        if self.line:
            return f"{self.file}:{self.line}:{self.column}"
        return str(self.file)

    def format(self) -> str:
        """
        Format error context as a human-readable string.

        Returns:
            Formatted string like: "Sample.msg:10:5 in schema demo/Sample"
        """
        location = self.location()
        if self.schema:
            location += f" in schema {self.schema}"

        if self.snippet is not None and self.line:
            return f"{location}\n{self._format_snippet()}"
        return location

    def _format_snippet(self) -> str:
        """Format the offending line with its number and an error marker."""
        prefix = f"{self.line:4d} | "
        marker = " " * (len(prefix) + self.column - 1) + "^^^"
        return f"{prefix}{self.snippet}\n{marker}"


def make_syntax_error(
    message: str,
    file: Path,
    line: int,
    column: int = 1,
    snippet: str | None = None,
) -> SchemaSyntaxError:
    """
    Helper to create a SchemaSyntaxError with context.

    Args:
        message: Error description
        file: Schema file path
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        snippet: Offending source line

    Returns:
        SchemaSyntaxError with context attached
    """
    context = ErrorContext(file=file, line=line, column=column, snippet=snippet)
    return SchemaSyntaxError(message, context)


def with_context(
    error_cls: type[MsgbindError],
    message: str,
    file: Path | None = None,
    line: int | None = None,
    column: int | None = None,
    schema: str | None = None,
    snippet: str | None = None,
) -> MsgbindError:
    """
    Helper to create any msgbind error with optional context.

    Context is attached whenever a file is known; line and column default
    to "whole file".
    """
    if file is not None:
        context = ErrorContext(
            file=file,
            line=line or 0,
            column=column or 1,
            snippet=snippet,
            schema=schema,
        )
        return error_cls(message, context)
    return error_cls(message)
