"""Literal find/replace edits applied to files inside a project directory.

Edits are applied one after another with no rollback: when an edit fails the
earlier ones stay applied and the failing file is left untouched. A failure
means the fixture template and the edit no longer agree, so it aborts the run.

Files are edited as raw bytes: line endings and any bytes outside the
matched text are written back unchanged, whatever the file's encoding.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from genharness.errors import ReplacementTextNotFoundError
from genharness.utils import console


class Replacement(BaseModel):
    """One literal edit: every occurrence of ``find`` in ``filename`` becomes ``replace``."""

    model_config = ConfigDict(frozen=True)

    filename: str = Field(..., description="Path relative to the project root")
    find: str = Field(..., min_length=1)
    replace: str = Field(default="")


def apply_replacement(root_dir: Path, replacement: Replacement) -> None:
    """Apply a single edit under *root_dir*.

    Raises:
        ReplacementTextNotFoundError: If the file is missing or does not
            contain the search text.
    """
    path = Path(root_dir) / replacement.filename
    if not path.is_file():
        raise ReplacementTextNotFoundError(
            replacement.find,
            replacement.filename,
            message=f'Could not find "{replacement.find}" inside "{replacement.filename}" '
            f"(file does not exist: {path})",
        )

    contents = path.read_bytes()
    find = replacement.find.encode("utf-8")
    if find not in contents:
        raise ReplacementTextNotFoundError(replacement.find, replacement.filename)

    path.write_bytes(contents.replace(find, replacement.replace.encode("utf-8")))


def apply_replacements(root_dir: Path, replacements: Iterable[Replacement]) -> int:
    """Apply *replacements* in order and return how many were applied."""
    applied = 0
    for replacement in replacements:
        apply_replacement(root_dir, replacement)
        applied += 1
        console.print(f"  [dim]replaced text in {replacement.filename}[/dim]")
    return applied
