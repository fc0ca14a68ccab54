"""Post-generation validation.

Runs the checks that follow a successful generator run, each one gating the
next:

1. the output contains the success marker;
2. every created file passes the style checker (dry-run / diff mode);
3. every scenario post-command exits cleanly in the working project;
4. when the scenario brought fixture files, their bundled tests pass.

The success check is plain substring containment on the generator's output.
That text is owned by the generator, not by this harness, so the check is
deliberately loose and breaks if the generator rewords its message.
"""

from __future__ import annotations

import shlex
from collections.abc import Sequence
from typing import TYPE_CHECKING

from genharness.errors import (
    GeneratedTestError,
    MissingSuccessMarkerError,
    PostCommandError,
    StyleCheckError,
)
from genharness.utils import console, run_command, tail
from genharness.validators.artifacts import extract_created_files

if TYPE_CHECKING:
    from genharness.config import HarnessConfig
    from genharness.driver.interactive import RunResult
    from genharness.fixtures.materializer import WorkingProject
    from genharness.scenario import Scenario


class PostGenerationValidator:
    """Validates what a generator run produced inside the working project."""

    def __init__(self, config: HarnessConfig):
        self.config = config

    def check_success_marker(self, result: RunResult) -> None:
        """Raise :class:`MissingSuccessMarkerError` unless stdout contains the marker."""
        marker = self.config.success_marker
        if marker not in result.stdout:
            raise MissingSuccessMarkerError(
                f'Generator output does not contain "{marker}".\n'
                f"Output:\n{tail(result.stdout)}\nError output:\n{tail(result.stderr)}",
                command=result.command,
                stdout=result.stdout,
                stderr=result.stderr,
            )

    def style_command(self, project: WorkingProject, filename: str) -> str:
        path = project.path / filename
        return self.config.style_checker.replace("{file}", shlex.quote(str(path)))

    async def check_style(self, project: WorkingProject, files: Sequence[str]) -> None:
        """Run the style checker once per generated file.

        The checker runs from the harness root so it uses the harness's own
        ruleset, not anything shipped inside the working project.
        """
        for filename in files:
            cmd = self.style_command(project, filename)
            returncode, stdout, stderr = await run_command(
                cmd, cwd=self.config.root_dir, timeout=self.config.command_timeout
            )
            if returncode != 0:
                raise StyleCheckError(
                    f'File "{filename}" has a style problem: {stdout}{stderr}',
                    filename=filename,
                    command=cmd,
                    stdout=stdout,
                    stderr=stderr,
                )
            console.print(f"  [green]+[/green] style ok: {filename}")

    async def run_post_commands(self, project: WorkingProject, commands: Sequence[str]) -> None:
        """Run each post-command as a shell string inside the working project."""
        for command in commands:
            returncode, stdout, stderr = await run_command(
                command, cwd=project.path, timeout=self.config.command_timeout
            )
            if returncode != 0:
                raise PostCommandError(
                    f'Error with post command: "{command}" (exit {returncode}): '
                    f'"{tail(stdout)}" "{tail(stderr)}"',
                    command=command,
                    stdout=stdout,
                    stderr=stderr,
                )
            console.print(f"  [green]+[/green] post command ok: {command}")

    async def run_generated_tests(self, project: WorkingProject) -> None:
        """Run the test runner inside the working project and require success."""
        command = self.config.test_runner
        returncode, stdout, stderr = await run_command(
            command, cwd=project.path, timeout=self.config.command_timeout
        )
        if returncode != 0:
            raise GeneratedTestError(
                f"Error while running the tests *in* the project: \n\n{stdout}\n{stderr}",
                command=command,
                stdout=stdout,
                stderr=stderr,
            )
        console.print("  [green]+[/green] bundled fixture tests passed")

    async def validate(
        self,
        scenario: Scenario,
        project: WorkingProject,
        result: RunResult,
    ) -> list[str]:
        """Run every check in order and return the created files.

        The first failing check raises; later checks are not attempted.
        """
        self.check_success_marker(result)

        files = extract_created_files(result.stdout, self.config.created_marker)
        await self.check_style(project, files)
        await self.run_post_commands(project, scenario.post_commands)

        # a fixture set is assumed to bundle its own tests
        if scenario.fixture_files_path is not None:
            await self.run_generated_tests(project)

        return files
