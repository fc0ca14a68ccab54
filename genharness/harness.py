"""genharness orchestrator.

Runs a scenario end to end:

1. MATERIALIZE -- clone the cached fixture project into the working project.
2. GENERATE    -- launch the generator and feed it the scripted answers.
3. VALIDATE    -- success marker, style check, post-commands, bundled tests.

Usage::

    python -m genharness.harness scenarios.yaml
    python -m genharness.harness scenarios.yaml --only controller_basic --timeout 30
"""

from __future__ import annotations

import asyncio
import sys
import time
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from rich.panel import Panel

from genharness.config import HarnessConfig
from genharness.driver.interactive import InteractiveDriver, RunResult
from genharness.errors import HarnessError, ProcessNonZeroExitError
from genharness.fixtures.materializer import ProjectMaterializer, WorkingProject
from genharness.scenario import Scenario, load_scenarios
from genharness.utils import (
    console,
    format_duration,
    print_error,
    print_scenario_header,
    print_success,
    print_summary_table,
    tail,
)
from genharness.validators.post_generation import PostGenerationValidator


@dataclass(frozen=True)
class HarnessResult:
    """Everything a successful scenario run produced."""

    scenario: Scenario
    project: WorkingProject
    run: RunResult
    files: list[str]
    duration_seconds: float = 0.0


@dataclass(frozen=True)
class ScenarioOutcome:
    """Pass/fail record for one scenario in a batch."""

    scenario: Scenario
    result: HarnessResult | None = None
    error: HarnessError | None = None

    @property
    def passed(self) -> bool:
        return self.error is None


class GeneratorHarness:
    """Drives scenarios through materialization, generation and validation.

    Attributes:
        config: Harness configuration shared by every component.
        materializer: Builds the working project for each scenario.
        driver: Runs the generator process.
        validator: Checks what the generator produced.
    """

    def __init__(
        self,
        config: HarnessConfig,
        materializer: ProjectMaterializer | None = None,
        driver: InteractiveDriver | None = None,
        validator: PostGenerationValidator | None = None,
    ) -> None:
        self.config = config
        self.materializer = materializer or ProjectMaterializer(config)
        self.driver = driver or InteractiveDriver(config)
        self.validator = validator or PostGenerationValidator(config)
        # the working project directory is exclusive to one run
        self._lock = asyncio.Lock()

    async def run(self, scenario: Scenario) -> HarnessResult:
        """Run *scenario* and return the created files.

        Raises:
            HarnessError: The first failure, of whichever kind; the working
                project is left in place for inspection.
        """
        async with self._lock:
            start_time = time.monotonic()
            print_scenario_header(scenario.display_name)

            project = await self.materializer.prepare(scenario)

            command = self.driver.generator_command(scenario.generator)
            result = await self.driver.run(
                command, cwd=project.path, inputs=scenario.inputs, timeout=self.config.timeout
            )
            if not result.success:
                raise ProcessNonZeroExitError(
                    f'Running generator command failed (exit {result.exit_code}): '
                    f'"{tail(result.stdout)}" "{tail(result.stderr)}"',
                    exit_code=result.exit_code,
                    command=result.command,
                    stdout=result.stdout,
                    stderr=result.stderr,
                )

            files = await self.validator.validate(scenario, project, result)
            elapsed = time.monotonic() - start_time

            console.print(
                Panel(
                    f"{result.summary()}\n"
                    f"Files created: {len(files)}\n"
                    + "\n".join(f"  - {f}" for f in files),
                    title=f"{scenario.display_name} passed in {format_duration(elapsed)}",
                    border_style="green",
                )
            )
            return HarnessResult(
                scenario=scenario,
                project=project,
                run=result,
                files=files,
                duration_seconds=elapsed,
            )

    async def run_all(self, scenarios: Iterable[Scenario]) -> list[ScenarioOutcome]:
        """Run *scenarios* one after another, recording each outcome.

        A failing scenario does not stop the batch.
        """
        outcomes: list[ScenarioOutcome] = []
        for scenario in scenarios:
            try:
                outcomes.append(ScenarioOutcome(scenario=scenario, result=await self.run(scenario)))
            except HarnessError as exc:
                print_error(f"{scenario.display_name}: {type(exc).__name__}")
                console.print(str(exc), markup=False, highlight=False)
                outcomes.append(ScenarioOutcome(scenario=scenario, error=exc))
        return outcomes


def _print_outcomes(outcomes: list[ScenarioOutcome]) -> None:
    rows: list[tuple[str, str, str]] = []
    for outcome in outcomes:
        if outcome.passed and outcome.result is not None:
            rows.append(
                (
                    outcome.scenario.display_name,
                    "[green]PASSED[/green]",
                    f"{len(outcome.result.files)} file(s), "
                    f"{format_duration(outcome.result.duration_seconds)}",
                )
            )
        else:
            rows.append(
                (
                    outcome.scenario.display_name,
                    "[red]FAILED[/red]",
                    type(outcome.error).__name__,
                )
            )
    print_summary_table(rows, title="Generator Scenarios")


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``python -m genharness.harness``."""
    import argparse

    parser = argparse.ArgumentParser(
        description="genharness -- drive interactive code generators end to end",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python -m genharness.harness scenarios.yaml\n"
            "  python -m genharness.harness scenarios.yaml --only controller_basic\n"
            "  python -m genharness.harness scenarios.yaml --root . --timeout 30\n"
        ),
    )
    parser.add_argument("scenarios", help="Path to the YAML scenario file")
    parser.add_argument(
        "--only",
        action="append",
        default=None,
        metavar="NAME",
        help="Run only the named scenario (repeatable)",
    )
    parser.add_argument(
        "--root",
        default=None,
        help="Harness root directory (default: $GENHARNESS_ROOT_DIR or the current directory)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Generator timeout in seconds (default: 10)",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Load configuration from a JSON file saved by HarnessConfig.save()",
    )

    args = parser.parse_args(argv)

    scenarios_path = Path(args.scenarios)
    if not scenarios_path.exists():
        console.print(f"[bold red]Error:[/bold red] Scenario file not found: {scenarios_path}")
        sys.exit(1)

    try:
        scenarios = load_scenarios(scenarios_path)
    except HarnessError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        sys.exit(1)

    if args.only:
        wanted = set(args.only)
        unknown = wanted - {s.display_name for s in scenarios}
        if unknown:
            console.print(f"[bold red]Error:[/bold red] Unknown scenario(s): {', '.join(sorted(unknown))}")
            sys.exit(1)
        scenarios = [s for s in scenarios if s.display_name in wanted]

    config = HarnessConfig.load(Path(args.config)) if args.config else HarnessConfig.from_env()
    updates: dict = {}
    if args.root:
        updates["root_dir"] = Path(args.root).resolve()
    if args.timeout is not None:
        updates["timeout"] = args.timeout
    if updates:
        config = config.model_copy(update=updates)
    config.ensure_directories()

    harness = GeneratorHarness(config)
    outcomes = asyncio.run(harness.run_all(scenarios))
    _print_outcomes(outcomes)

    if all(o.passed for o in outcomes):
        print_success(f"All {len(outcomes)} scenario(s) passed.")
    else:
        failed = sum(1 for o in outcomes if not o.passed)
        print_error(f"{failed} of {len(outcomes)} scenario(s) failed.")
        sys.exit(1)


if __name__ == "__main__":
    main()
