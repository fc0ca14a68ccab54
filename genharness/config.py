"""genharness configuration.

Centralised, typed configuration for the harness. All settings use Pydantic v2
models so they are validated at construction time and can be serialised to
and from JSON or environment variables.

The template, cache and working-project directories are derived from
``root_dir`` and ``tmp_dir`` rather than held in module globals, so two
harnesses pointed at different roots never share state.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from genharness.fixtures.replacements import Replacement


class PackageManagerConfig(BaseModel):
    """Command lines for the package manager that builds fixture projects.

    Each command is an argument list appended to ``binary``.
    """

    binary: str = Field(default="composer")
    create_project: list[str] = Field(default=["create-project", "symfony/skeleton"])
    require: list[str] = Field(default=["require"])
    require_dev: list[str] = Field(default=["require", "--dev"])
    dump_autoload: list[str] = Field(default=["dump-autoload"])
    vendor_dir: str = Field(default="vendor", description="Directory packages are installed into")
    timeout: int = Field(default=600, ge=1, description="Per-command timeout in seconds")

    def command(self, args: list[str]) -> list[str]:
        """Return the full argument list for one package-manager invocation."""
        return [self.binary, *args]


class HarnessConfig(BaseModel):
    """Global harness configuration.

    Instances are created once, by the CLI, the pytest plugin or a caller,
    and then passed to the materializer, driver and validators.
    """

    root_dir: Path = Field(default_factory=Path.cwd, description="Harness project root")
    tmp_dir: str = Field(default="tests/tmp")

    # Generator invocation: <runtime> <entrypoint> <command_name>
    runtime: str = Field(default="php")
    entrypoint: str = Field(default="bin/console")
    timeout: float = Field(default=10.0, ge=0.1, description="Generator wall-clock timeout in seconds")
    interactive_env_var: str = Field(default="SHELL_INTERACTIVE")

    # Output text contract
    success_marker: str = Field(default="Success")
    created_marker: str = Field(default="created:")

    package_manager: PackageManagerConfig = Field(default_factory=PackageManagerConfig)
    style_checker: str = Field(
        default="php vendor/bin/php-cs-fixer fix --dry-run --diff {file}",
        description="Run once per generated file from root_dir; {file} is the absolute path",
    )
    test_runner: str = Field(default="vendor/bin/phpunit")
    command_timeout: int = Field(default=300, ge=1, description="Timeout for validator commands")

    template_replacements: list[Replacement] = Field(default_factory=list)
    template_packages: list[str] = Field(default=["phpunit", "browser-kit"])

    # ------------------------------------------------------------------
    # Derived paths (read-only properties)
    # ------------------------------------------------------------------

    @property
    def tmp_path(self) -> Path:
        """Root of every directory the harness writes."""
        return self.root_dir / self.tmp_dir

    @property
    def template_project_path(self) -> Path:
        """Baseline project every fixture cache slot is cloned from."""
        return self.tmp_path / "template_project"

    @property
    def cache_path(self) -> Path:
        """Fixture cache root, one subdirectory per cache key."""
        return self.tmp_path / "cache"

    @property
    def working_project_path(self) -> Path:
        """The single, reused directory a run executes inside."""
        return self.tmp_path / "current_project"

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path | None = None) -> Path:
        """Persist the configuration to a JSON file.

        Args:
            path: Destination file. Defaults to ``<tmp_path>/config.json``.

        Returns:
            The path where the file was written.
        """
        target = path or (self.tmp_path / "config.json")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "HarnessConfig":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "HarnessConfig":
        """Build a ``HarnessConfig`` from environment variables.

        Recognised variables (all optional):
            GENHARNESS_ROOT_DIR, GENHARNESS_TMP_DIR, GENHARNESS_RUNTIME,
            GENHARNESS_ENTRYPOINT, GENHARNESS_TIMEOUT, GENHARNESS_STYLE_CHECKER,
            GENHARNESS_TEST_RUNNER, GENHARNESS_PACKAGE_MANAGER.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("GENHARNESS_ROOT_DIR"):
            kwargs["root_dir"] = Path(os.environ["GENHARNESS_ROOT_DIR"])
        if os.environ.get("GENHARNESS_TMP_DIR"):
            kwargs["tmp_dir"] = os.environ["GENHARNESS_TMP_DIR"]
        if os.environ.get("GENHARNESS_RUNTIME"):
            kwargs["runtime"] = os.environ["GENHARNESS_RUNTIME"]
        if os.environ.get("GENHARNESS_ENTRYPOINT"):
            kwargs["entrypoint"] = os.environ["GENHARNESS_ENTRYPOINT"]
        if os.environ.get("GENHARNESS_TIMEOUT"):
            kwargs["timeout"] = float(os.environ["GENHARNESS_TIMEOUT"])
        if os.environ.get("GENHARNESS_STYLE_CHECKER"):
            kwargs["style_checker"] = os.environ["GENHARNESS_STYLE_CHECKER"]
        if os.environ.get("GENHARNESS_TEST_RUNNER"):
            kwargs["test_runner"] = os.environ["GENHARNESS_TEST_RUNNER"]
        if os.environ.get("GENHARNESS_PACKAGE_MANAGER"):
            kwargs["package_manager"] = PackageManagerConfig(
                binary=os.environ["GENHARNESS_PACKAGE_MANAGER"]
            )

        return cls(**kwargs)

    def ensure_directories(self) -> None:
        """Create the directories that must exist before the first run."""
        for directory in (self.tmp_path, self.cache_path):
            directory.mkdir(parents=True, exist_ok=True)
