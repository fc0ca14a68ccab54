"""genharness -- end-to-end harness for interactive command-line code generators.

A :class:`Scenario` names a generator, the answers to type into it and the
fixture project to run it against. :class:`GeneratorHarness` materializes the
project, drives the generator and validates the files it reports creating.
"""

from .config import HarnessConfig, PackageManagerConfig
from .driver import InputPlan, InteractiveDriver, RunResult
from .errors import HarnessError
from .fixtures import DependencyBuilder, ProjectMaterializer, Replacement, WorkingProject
from .harness import GeneratorHarness, HarnessResult, ScenarioOutcome
from .scenario import Dependency, GeneratorSpec, Scenario, load_scenarios
from .validators import PostGenerationValidator, extract_created_files

__all__ = [
    "HarnessConfig",
    "PackageManagerConfig",
    "InteractiveDriver",
    "InputPlan",
    "RunResult",
    "HarnessError",
    "DependencyBuilder",
    "ProjectMaterializer",
    "Replacement",
    "WorkingProject",
    "GeneratorHarness",
    "HarnessResult",
    "ScenarioOutcome",
    "Dependency",
    "GeneratorSpec",
    "Scenario",
    "load_scenarios",
    "PostGenerationValidator",
    "extract_created_files",
]
