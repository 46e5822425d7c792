import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from .errors import SchemaIOError, with_context

CONFIG_FILE_NAME = "msgbind.toml"
JOBS_ENV_VAR = "MSGBIND_JOBS"


@dataclass
class CompilerConfig:
    """Compiler settings, from ``msgbind.toml`` or keyword arguments."""

    jobs: int = 1  # worker threads for resolution and emission
    partial_output: bool = False  # write successful units even when errors exist
    write_init: bool = True  # write package __init__.py re-export files
    dependencies: dict[str, list[Path]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.jobs < 1:
            raise ValueError(f"jobs must be at least 1, got {self.jobs}")


def _jobs_from_env(default: int) -> int:
    value = os.environ.get(JOBS_ENV_VAR, "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{JOBS_ENV_VAR} must be an integer, got {value!r}") from None


def load_config(path: Path | None = None) -> CompilerConfig:
    """
    Load compiler configuration.

    Dependency paths are relative to the directory holding the file.
    ``MSGBIND_JOBS`` overrides ``compiler.jobs``.

    Args:
        path: A ``msgbind.toml`` file; None for the defaults

    Raises:
        SchemaIOError: If the file cannot be read or is not valid TOML
    """
    data: dict = {}
    base = Path.cwd()
    if path is not None:
        base = path.parent
        try:
            data = tomllib.loads(path.read_text(encoding="utf-8"))
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise with_context(SchemaIOError, f"Cannot load config: {e}", file=path) from e

    compiler = data.get("compiler", {})
    deps_data = data.get("dependencies", {})

    dependencies = {
        package: [base / p for p in paths] for package, paths in sorted(deps_data.items())
    }

    return CompilerConfig(
        jobs=_jobs_from_env(compiler.get("jobs", 1)),
        partial_output=compiler.get("partial_output", False),
        write_init=compiler.get("write_init", True),
        dependencies=dependencies,
    )
