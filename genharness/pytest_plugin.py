"""pytest plugin exposing the harness to a generator's own test suite.

Registered through the ``pytest11`` entry point, so installing genharness is
enough. A test then reads::

    async def test_make_controller(run_generator, controller_generator):
        scenario = Scenario(generator=controller_generator, inputs=("FooController",))
        result = await run_generator(scenario)
        assert "src/Controller/FooController.php" in result.files

Configuration comes from ``GENHARNESS_*`` environment variables, or from the
JSON file named by ``GENHARNESS_CONFIG`` (as written by ``HarnessConfig.save``).
"""

from __future__ import annotations

import os
from collections.abc import Awaitable, Callable
from pathlib import Path

import pytest

from genharness.config import HarnessConfig
from genharness.harness import GeneratorHarness, HarnessResult
from genharness.scenario import Scenario


@pytest.fixture(scope="session")
def harness_config() -> HarnessConfig:
    """Harness configuration read from the environment, shared by the session."""
    saved = os.environ.get("GENHARNESS_CONFIG")
    config = HarnessConfig.load(Path(saved)) if saved else HarnessConfig.from_env()
    config.ensure_directories()
    return config


@pytest.fixture
def generator_harness(harness_config: HarnessConfig) -> GeneratorHarness:
    return GeneratorHarness(harness_config)


@pytest.fixture
def run_generator(
    generator_harness: GeneratorHarness,
) -> Callable[[Scenario], Awaitable[HarnessResult]]:
    """Coroutine function running one scenario; any failure raises ``HarnessError``."""

    async def _run(scenario: Scenario) -> HarnessResult:
        return await generator_harness.run(scenario)

    return _run
