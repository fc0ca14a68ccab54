"""Fixture project materialization.

Produces the ready-to-run working project for a scenario:

1. A baseline template project is created once with the package manager.
2. Each distinct cache key gets a slot cloned from the template, with the
   generator's missing dependencies installed. Slots are built in a
   ``.partial`` directory and renamed into place, so a slot that exists is
   always complete.
3. Every run wipes the working project, mirrors the slot into it,
   regenerates autoload metadata, then overlays fixture files and applies
   the scenario's replacements.

Only one working project exists per configuration; runs against the same
configuration must be sequential.
"""

from __future__ import annotations

import shutil
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from rich.panel import Panel

from genharness.errors import (
    AutoloadRegenerationError,
    HarnessError,
    MissingFixtureDirectoryError,
    PackageInstallError,
    ProjectFilesystemError,
    TemplateBuildError,
)
from genharness.fixtures.dependencies import DependencyBuilder
from genharness.fixtures.replacements import apply_replacements
from genharness.utils import console, print_warning, run_command, tail

if TYPE_CHECKING:
    from genharness.config import HarnessConfig
    from genharness.scenario import Scenario


@dataclass(frozen=True)
class WorkingProject:
    """The live directory one run executes inside."""

    path: Path
    cache_key: str
    cache_path: Path
    cache_built: bool = False


def copy_fixture_files(source: Path, destination: Path) -> list[str]:
    """Copy every file below *source* into *destination*, keeping relative paths.

    Files sitting directly in *source* describe the fixture set and are not
    copied. Existing files in *destination* are overwritten.

    Returns:
        The copied relative paths, sorted.
    """
    copied: list[str] = []
    for file in sorted(source.rglob("*")):
        if not file.is_file() or file.parent == source:
            continue
        relative = file.relative_to(source)
        target = destination / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(file, target)
        copied.append(relative.as_posix())
    return copied


def _discard_partial(path: Path) -> None:
    if path.exists():
        print_warning(f"Discarding incomplete build left at {path}")
        _remove_tree(path)


def _remove_tree(path: Path) -> None:
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.exists():
        shutil.rmtree(path)


@contextmanager
def _filesystem_step(description: str) -> Iterator[None]:
    """Turn an ``OSError`` raised inside the block into a :class:`ProjectFilesystemError`."""
    try:
        yield
    except OSError as exc:
        raise ProjectFilesystemError(f"Filesystem error while {description}: {exc}") from exc


class ProjectMaterializer:
    """Builds and caches fixture projects, and prepares the working project.

    Parameters
    ----------
    config:
        Harness configuration; supplies the template, cache and working
        directories plus the package-manager command lines.
    """

    def __init__(self, config: HarnessConfig):
        self.config = config
        self.package_manager = config.package_manager

    # ------------------------------------------------------------------
    # Package manager
    # ------------------------------------------------------------------

    async def _run_package_manager(
        self,
        args: list[str],
        cwd: Path,
        error_cls: type[HarnessError],
    ) -> str:
        cmd = self.package_manager.command(args)
        cmd_str = " ".join(cmd)
        console.print(f"  [dim]$ {cmd_str}  (in {cwd})[/dim]")

        returncode, stdout, stderr = await run_command(
            cmd, cwd=cwd, timeout=self.package_manager.timeout
        )
        if returncode != 0:
            raise error_cls(
                f'Error running command: "{cmd_str}" (exit {returncode}). '
                f'Output: "{tail(stdout)}". Error: "{tail(stderr)}"',
                command=cmd_str,
                stdout=stdout,
                stderr=stderr,
            )
        return stdout

    # ------------------------------------------------------------------
    # Template project
    # ------------------------------------------------------------------

    async def ensure_template(self) -> bool:
        """Create the baseline template project if it does not exist yet.

        Returns:
            True if the template was built by this call.

        Raises:
            TemplateBuildError: If the package manager fails.
            ReplacementTextNotFoundError: If a template replacement does not match.
            ProjectFilesystemError: If the template directory cannot be written.
        """
        template = self.config.template_project_path
        if template.exists():
            return False

        partial = template.with_name(template.name + ".partial")
        with _filesystem_step(f"clearing {partial}"):
            template.parent.mkdir(parents=True, exist_ok=True)
            _discard_partial(partial)

        console.print(f"[cyan]Building template project[/cyan] [bold]{template}[/bold]...")
        try:
            await self._run_package_manager(
                [*self.package_manager.create_project, partial.name],
                cwd=template.parent,
                error_cls=TemplateBuildError,
            )
            with _filesystem_step("editing the template project"):
                apply_replacements(partial, self.config.template_replacements)
            if self.config.template_packages:
                await self._run_package_manager(
                    [*self.package_manager.require, *self.config.template_packages],
                    cwd=partial,
                    error_cls=TemplateBuildError,
                )
            with _filesystem_step(f"moving {partial} into place"):
                partial.rename(template)
        except HarnessError:
            _remove_tree(partial)
            raise

        console.print(f"[green]Template project ready:[/green] {template}")
        return True

    # ------------------------------------------------------------------
    # Fixture cache
    # ------------------------------------------------------------------

    def cache_slot(self, scenario: Scenario) -> Path:
        return self.config.cache_path / scenario.cache_key

    async def ensure_cache(self, scenario: Scenario) -> tuple[Path, bool]:
        """Return the cache slot for *scenario*, building it on first use.

        Returns:
            ``(slot_path, built)`` where *built* is True if this call built it.

        Raises:
            PackageInstallError: If installing a missing dependency fails;
                the half-built slot is discarded.
            ProjectFilesystemError: If the template cannot be copied into the slot.
        """
        slot = self.cache_slot(scenario)
        if slot.exists():
            return slot, False

        partial = slot.with_name(slot.name + ".partial")
        with _filesystem_step(f"clearing {partial}"):
            slot.parent.mkdir(parents=True, exist_ok=True)
            _discard_partial(partial)

        console.print(
            f"[cyan]Building fixture cache[/cyan] [bold]{scenario.cache_key}[/bold] "
            f"for [green]{scenario.generator.name}[/green]..."
        )
        builder = DependencyBuilder(vendor_dir=self.package_manager.vendor_dir)
        scenario.generator.configure_dependencies(builder)

        try:
            with _filesystem_step(f"copying the template project into {partial}"):
                shutil.copytree(self.config.template_project_path, partial, symlinks=True)
            missing = builder.get_missing_dependencies(partial)
            if missing:
                await self._run_package_manager(
                    [*self.package_manager.require, *missing],
                    cwd=partial,
                    error_cls=PackageInstallError,
                )
            missing_dev = builder.get_missing_dev_dependencies(partial)
            if missing_dev:
                await self._run_package_manager(
                    [*self.package_manager.require_dev, *missing_dev],
                    cwd=partial,
                    error_cls=PackageInstallError,
                )
            with _filesystem_step(f"moving {partial} into place"):
                partial.rename(slot)
        except HarnessError:
            _remove_tree(partial)
            raise

        return slot, True

    # ------------------------------------------------------------------
    # Working project
    # ------------------------------------------------------------------

    async def prepare(self, scenario: Scenario) -> WorkingProject:
        """Materialize the working project for *scenario*.

        Raises:
            MissingFixtureDirectoryError: If the fixture directory is missing.
            PackageInstallError: If the cache slot cannot be built.
            AutoloadRegenerationError: If autoload metadata cannot be regenerated.
            ReplacementTextNotFoundError: If a scenario replacement does not match.
            ProjectFilesystemError: If copying or editing project files fails.
        """
        fixture_dir = scenario.fixture_files_path
        if fixture_dir is not None and not fixture_dir.is_dir():
            raise MissingFixtureDirectoryError(f'Cannot find fixtures directory "{fixture_dir}"')

        await self.ensure_template()
        slot, built = await self.ensure_cache(scenario)

        working = self.config.working_project_path
        with _filesystem_step(f"mirroring {slot} into {working}"):
            _remove_tree(working)
            shutil.copytree(slot, working, symlinks=True)

        # autoload paths are recorded relative to the old location
        await self._run_package_manager(
            self.package_manager.dump_autoload,
            cwd=working,
            error_cls=AutoloadRegenerationError,
        )

        copied: list[str] = []
        with _filesystem_step(f"overlaying fixture files onto {working}"):
            if fixture_dir is not None:
                copied = copy_fixture_files(fixture_dir, working)
            if scenario.replacements:
                apply_replacements(working, scenario.replacements)

        console.print(
            Panel(
                f"[green]Working project ready[/green]\n"
                f"  Path:      {working}\n"
                f"  Cache key: {scenario.cache_key}{' (built)' if built else ''}\n"
                f"  Fixtures:  {len(copied)} file(s)\n"
                f"  Edits:     {len(scenario.replacements)}",
                title="Project Materialized",
                border_style="green",
            )
        )

        return WorkingProject(
            path=working,
            cache_key=scenario.cache_key,
            cache_path=slot,
            cache_built=built,
        )
