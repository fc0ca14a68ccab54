"""Shared pytest fixtures for the genharness test suite.

Provides reusable fixtures for:
- A harness configuration rooted in a temporary directory, wired to the
  fake generator, fake package manager and fake style checker in tests/fakes
- Fixture-file directories
- Scenario builders
- Mock subprocess helpers
"""

from __future__ import annotations

import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from genharness.config import HarnessConfig, PackageManagerConfig
from genharness.scenario import Dependency, GeneratorSpec, Scenario

pytest_plugins = ["pytester"]

FAKES_DIR = Path(__file__).parent / "fakes"
FAKE_GENERATOR = FAKES_DIR / "fake_generator.py"
FAKE_PACKAGE_MANAGER = FAKES_DIR / "fake_package_manager.py"
STYLE_CHECK = FAKES_DIR / "style_check.py"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@pytest.fixture
def fake_package_manager() -> PackageManagerConfig:
    """Package-manager commands that run tests/fakes/fake_package_manager.py."""
    script = str(FAKE_PACKAGE_MANAGER)
    return PackageManagerConfig(
        binary=sys.executable,
        create_project=[script, "create-project"],
        require=[script, "require"],
        require_dev=[script, "require", "--dev"],
        dump_autoload=[script, "dump-autoload"],
        timeout=60,
    )


@pytest.fixture
def tmp_harness_config(tmp_path: Path, fake_package_manager: PackageManagerConfig) -> HarnessConfig:
    """Harness configuration rooted in tmp_path and backed by the fakes."""
    return HarnessConfig(
        root_dir=tmp_path / "harness",
        runtime=sys.executable,
        entrypoint=str(FAKE_GENERATOR),
        timeout=10.0,
        package_manager=fake_package_manager,
        style_checker=f'"{sys.executable}" "{STYLE_CHECK}" {{file}}',
        test_runner=f'"{sys.executable}" tests/run_tests.py',
        command_timeout=60,
        template_packages=[],
    )


# ---------------------------------------------------------------------------
# Fixture files
# ---------------------------------------------------------------------------

@pytest.fixture
def fixture_dir(tmp_path: Path) -> Path:
    """A fixture-files directory bundling its own (passing) test script.

    Layout::

        MakeController/
            README.md                 (root-level: not copied)
            tests/run_tests.py        (checks the generated controller exists)
            config/routes.yaml
    """
    root = tmp_path / "fixtures" / "MakeController"
    (root / "tests").mkdir(parents=True)
    (root / "config").mkdir()
    (root / "README.md").write_text("Fixture for make:controller\n")
    (root / "tests" / "run_tests.py").write_text(
        "import os, sys\n"
        "ok = os.path.exists('src/Controller/FooController.php')\n"
        "print('OK (1 test)' if ok else 'FAILURES! controller missing')\n"
        "sys.exit(0 if ok else 1)\n"
    )
    (root / "config" / "routes.yaml").write_text("#index:\n#    path: /\n")
    return root


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------

@pytest.fixture
def controller_generator() -> GeneratorSpec:
    return GeneratorSpec(
        name="controller",
        command_name="make:controller",
        dependencies=(Dependency(package="symfony/twig-bundle"),),
    )


@pytest.fixture
def controller_scenario(controller_generator: GeneratorSpec) -> Scenario:
    return Scenario(
        name="controller_basic",
        generator=controller_generator,
        inputs=("FooController",),
    )


# ---------------------------------------------------------------------------
# Subprocess mocking
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for testing command execution.

    Returns a factory that creates mock subprocess instances with configurable
    stdout, stderr, and return codes.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stdout="output", returncode=0)
            with patch("asyncio.create_subprocess_exec", return_value=proc):
                ...
    """
    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory
