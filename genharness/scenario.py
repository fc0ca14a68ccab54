"""Scenario models: what one generator run is asked to do.

A :class:`Scenario` is immutable. The ``with_*`` / ``add_*`` helpers return
modified copies, so a base scenario can be shared between tests safely.
Scenarios can also be loaded from a YAML file::

    scenarios:
      - name: controller_basic
        generator:
          name: controller
          command_name: make:controller
          dependencies:
            - package: symfony/twig-bundle
        inputs: [FooController]
        fixture_files: fixtures/MakeController
        replacements:
          - filename: config/routes.yaml
            find: "#index:"
            replace: "index:"
        post_commands:
          - php bin/console lint:container
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from genharness.errors import ScenarioFileError
from genharness.fixtures.dependencies import DependencyBuilder
from genharness.fixtures.replacements import Replacement
from genharness.utils import sanitize_name

DEFAULT_CACHE_NAME = "default"


class Dependency(BaseModel):
    """A package the generator needs inside the target project."""

    model_config = ConfigDict(frozen=True)

    package: str = Field(..., min_length=1)
    marker: str | None = Field(default=None, description="Path that exists once installed")
    dev: bool = Field(default=False)


class GeneratorSpec(BaseModel):
    """Identity of the generator under test."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    command_name: str = Field(..., min_length=1, description="Passed after the entrypoint")
    dependencies: tuple[Dependency, ...] = Field(default=())

    def configure_dependencies(self, builder: DependencyBuilder) -> None:
        """Declare every dependency of this generator on *builder*."""
        for dep in self.dependencies:
            builder.add_package(dep.package, marker=dep.marker, dev=dep.dev)


class Scenario(BaseModel):
    """An immutable description of one test run."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(default="")
    generator: GeneratorSpec
    inputs: tuple[str, ...] = Field(default=(), description="Scripted answers, in order")
    fixture_files_path: Path | None = Field(default=None)
    replacements: tuple[Replacement, ...] = Field(default=())
    post_commands: tuple[str, ...] = Field(default=())

    @field_validator("inputs", mode="before")
    @classmethod
    def _stringify_inputs(cls, value: Any) -> Any:
        # YAML turns answers such as "1" or "yes" into ints and bools
        if isinstance(value, (list, tuple)):
            return tuple(_answer_text(v) for v in value)
        return value

    @property
    def display_name(self) -> str:
        return self.name or self.generator.name

    @property
    def cache_key(self) -> str:
        """Stable identifier of the fixture set plus the declared dependencies.

        Scenarios without fixture files share the ``default`` prefix; the
        digest keeps scenarios that declare different dependencies apart.
        """
        if self.fixture_files_path is not None:
            prefix = sanitize_name(self.fixture_files_path.name) or DEFAULT_CACHE_NAME
            fixture_id = str(self.fixture_files_path.resolve())
        else:
            prefix = DEFAULT_CACHE_NAME
            fixture_id = ""

        deps = sorted(f"{d.package}|{d.marker or ''}|{d.dev}" for d in self.generator.dependencies)
        digest = hashlib.sha1("\n".join([fixture_id, *deps]).encode("utf-8")).hexdigest()
        return f"{prefix}_{digest[:10]}"

    # ------------------------------------------------------------------
    # Copy-on-write helpers
    # ------------------------------------------------------------------

    def with_inputs(self, *answers: str) -> "Scenario":
        return self.model_copy(update={"inputs": tuple(answers)})

    def with_fixture_files(self, path: str | Path) -> "Scenario":
        return self.model_copy(update={"fixture_files_path": Path(path)})

    def add_replacement(self, filename: str, find: str, replace: str) -> "Scenario":
        edit = Replacement(filename=filename, find=find, replace=replace)
        return self.model_copy(update={"replacements": (*self.replacements, edit)})

    def add_post_command(self, command: str) -> "Scenario":
        return self.model_copy(update={"post_commands": (*self.post_commands, command)})


def _answer_text(value: Any) -> str:
    if isinstance(value, bool):
        return "yes" if value else "no"
    if value is None:
        return ""
    return str(value)


def load_scenarios(path: str | Path) -> list[Scenario]:
    """Load every scenario from a YAML file.

    Relative ``fixture_files`` paths are resolved against the file's directory.

    Raises:
        ScenarioFileError: If the file is missing, is not valid YAML, or an
            entry does not validate.
    """
    file_path = Path(path)
    try:
        data = yaml.safe_load(file_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ScenarioFileError(f"Cannot read scenario file {file_path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ScenarioFileError(f"Invalid YAML in {file_path}: {exc}") from exc

    if not isinstance(data, dict) or not isinstance(data.get("scenarios"), list):
        raise ScenarioFileError(f"{file_path} must contain a top-level 'scenarios' list")

    scenarios: list[Scenario] = []
    for index, entry in enumerate(data["scenarios"]):
        if not isinstance(entry, dict):
            raise ScenarioFileError(f"Scenario #{index} in {file_path} is not a mapping")
        entry = dict(entry)
        fixture = entry.pop("fixture_files", None)
        if fixture is not None:
            fixture_path = Path(fixture)
            if not fixture_path.is_absolute():
                fixture_path = file_path.parent / fixture_path
            entry["fixture_files_path"] = fixture_path
        try:
            scenarios.append(Scenario.model_validate(entry))
        except ValidationError as exc:
            name = entry.get("name", f"#{index}")
            raise ScenarioFileError(f"Scenario {name} in {file_path} is invalid:\n{exc}") from exc

    return scenarios
