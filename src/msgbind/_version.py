"""msgbind version lookup."""

import tomllib
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as distribution_version
from pathlib import Path

DISTRIBUTION = "msgbind"

# src/msgbind/_version.py -> repository root
_CHECKOUT_PYPROJECT = Path(__file__).resolve().parents[2] / "pyproject.toml"


def _checkout_version(pyproject: Path) -> str | None:
    """Version declared by a source checkout of this project, if any."""
    if not pyproject.is_file():
        return None
    try:
        project = tomllib.loads(pyproject.read_text(encoding="utf-8")).get("project", {})
    except (OSError, tomllib.TOMLDecodeError):
        return None
    if project.get("name") != DISTRIBUTION:
        return None
    return project.get("version")


def get_version() -> str:
    """
    Resolve the running version.

    A source checkout wins over installed metadata, so editable installs
    report the version currently in ``pyproject.toml``.
    """
    declared = _checkout_version(_CHECKOUT_PYPROJECT)
    if declared:
        return declared
    try:
        return distribution_version(DISTRIBUTION)
    except PackageNotFoundError:
        return "0.0.0"


__version__ = get_version()
