"""genharness fixtures module.

Turns a scenario's fixture description into a ready-to-run project.

Key classes:
    ProjectMaterializer - template, fixture cache and working-project lifecycle
    DependencyBuilder   - which declared packages a project still lacks
    Replacement         - literal find/replace edit applied to a project file
"""

from .dependencies import DeclaredDependency, DependencyBuilder
from .materializer import ProjectMaterializer, WorkingProject, copy_fixture_files
from .replacements import Replacement, apply_replacement, apply_replacements

__all__ = [
    # Dependency declarations
    "DependencyBuilder",
    "DeclaredDependency",
    # Materialization
    "ProjectMaterializer",
    "WorkingProject",
    "copy_fixture_files",
    # Replacements
    "Replacement",
    "apply_replacement",
    "apply_replacements",
]
