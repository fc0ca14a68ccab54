"""Failure kinds raised while running a scenario.

Every error is fatal to the scenario that raised it and none is retried.
Each one carries the command and captured output involved so the failure can
be diagnosed without re-running it.
"""

from __future__ import annotations


class HarnessError(Exception):
    """Base class for every scenario failure."""

    def __init__(
        self,
        message: str,
        command: str = "",
        stdout: str = "",
        stderr: str = "",
    ):
        self.command = command
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(message)


class ScenarioFileError(HarnessError):
    """A scenario file could not be read or does not describe valid scenarios."""


class MissingFixtureDirectoryError(HarnessError):
    """The scenario names a fixture-files directory that does not exist."""


class ReplacementTextNotFoundError(HarnessError):
    """A replacement's search text is not present in its target file."""

    def __init__(self, find: str, filename: str, message: str | None = None):
        self.find = find
        self.filename = filename
        super().__init__(message or f'Could not find "{find}" inside "{filename}"')


class TemplateBuildError(HarnessError):
    """The baseline template project could not be created."""


class PackageInstallError(HarnessError):
    """The package manager failed to install a fixture's missing dependencies."""


class ProjectFilesystemError(HarnessError):
    """Copying, removing or editing files of a fixture project failed."""


class AutoloadRegenerationError(HarnessError):
    """Autoload metadata could not be regenerated in the working project."""


class ProcessTimeoutError(HarnessError):
    """The generator did not finish within the wall-clock timeout and was killed."""

    def __init__(self, message: str, timeout: float, **kwargs):
        self.timeout = timeout
        super().__init__(message, **kwargs)


class ProcessNonZeroExitError(HarnessError):
    """The generator exited with a non-zero status."""

    def __init__(self, message: str, exit_code: int, **kwargs):
        self.exit_code = exit_code
        super().__init__(message, **kwargs)


class MissingSuccessMarkerError(HarnessError):
    """The generator exited cleanly but never printed the success marker."""


class StyleCheckError(HarnessError):
    """The style checker reported a problem in a generated file."""

    def __init__(self, message: str, filename: str, **kwargs):
        self.filename = filename
        super().__init__(message, **kwargs)


class PostCommandError(HarnessError):
    """A scenario post-generation command exited with a non-zero status."""


class GeneratedTestError(HarnessError):
    """The tests bundled with a fixture set failed inside the working project."""
