"""Dependency declarations collected from a generator.

A generator declares the packages it needs; the builder answers which of them
are absent from a given project so that only those get installed.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class DeclaredDependency:
    """A package plus the path whose existence proves it is installed."""

    package: str
    marker: str
    dev: bool = False


class DependencyBuilder:
    """Collects package requirements and reports which ones a project lacks.

    Usage::

        builder = DependencyBuilder()
        builder.add_package("symfony/orm-pack")
        builder.add_package("phpunit/phpunit", dev=True)
        builder.get_missing_dependencies(project_dir)  # ["symfony/orm-pack"]
    """

    def __init__(self, vendor_dir: str = "vendor"):
        self.vendor_dir = vendor_dir
        self._dependencies: list[DeclaredDependency] = []

    def add_package(self, package: str, marker: str | None = None, dev: bool = False) -> "DependencyBuilder":
        """Declare *package*.

        Args:
            package: Name as the package manager knows it.
            marker: Path relative to the project that exists once the package
                is installed. Defaults to ``<vendor_dir>/<package>``.
            dev: Install as a development-only dependency.
        """
        self._dependencies.append(
            DeclaredDependency(
                package=package,
                marker=marker or f"{self.vendor_dir}/{package}",
                dev=dev,
            )
        )
        return self

    @property
    def dependencies(self) -> list[DeclaredDependency]:
        return list(self._dependencies)

    def _missing(self, project_dir: Path, dev: bool) -> list[str]:
        missing: list[str] = []
        for dep in self._dependencies:
            if dep.dev != dev or dep.package in missing:
                continue
            if not (Path(project_dir) / dep.marker).exists():
                missing.append(dep.package)
        return missing

    def get_missing_dependencies(self, project_dir: Path) -> list[str]:
        """Runtime packages not yet present in *project_dir*, in declaration order."""
        return self._missing(project_dir, dev=False)

    def get_missing_dev_dependencies(self, project_dir: Path) -> list[str]:
        """Development packages not yet present in *project_dir*."""
        return self._missing(project_dir, dev=True)
