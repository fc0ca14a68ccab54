"""genharness validators module.

Checks applied after the generator has run.

Key classes:
    PostGenerationValidator - success marker, style, post-commands, bundled tests
    extract_created_files   - paths announced by the generator's output
"""

from .artifacts import DEFAULT_CREATED_MARKER, extract_created_files, strip_ansi
from .post_generation import PostGenerationValidator

__all__ = [
    "PostGenerationValidator",
    "extract_created_files",
    "strip_ansi",
    "DEFAULT_CREATED_MARKER",
]
