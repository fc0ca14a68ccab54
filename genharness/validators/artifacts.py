"""Extraction of created-file announcements from generator output."""

from __future__ import annotations

import re

DEFAULT_CREATED_MARKER = "created:"

_ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]")


def strip_ansi(text: str) -> str:
    """Remove ANSI colour and cursor sequences from *text*."""
    return _ANSI_ESCAPE.sub("", text)


def extract_created_files(stdout: str, marker: str = DEFAULT_CREATED_MARKER) -> list[str]:
    """Return the relative paths announced after *marker*, in output order.

    Duplicates are kept, since the generator may legitimately announce a
    path twice. Lines whose text after the marker is blank are ignored.

    Example::

        >>> extract_created_files("created: src/Foo.php\\n Success!")
        ['src/Foo.php']
    """
    files: list[str] = []
    for line in strip_ansi(stdout).splitlines():
        if marker not in line:
            continue
        filename = line.split(marker, 1)[1].strip()
        if filename:
            files.append(filename)
    return files
