"""Tests for the interactive process driver (genharness.driver.interactive).

Tests cover:
- InputPlan cursor behaviour
- feed_input / observe_drain pacing against a fake stdin writer
- InteractiveDriver against real child processes (tests/fakes/fake_generator.py)
- Timeout handling and launch errors
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest

from genharness.config import HarnessConfig
from genharness.driver.interactive import (
    CLOSE,
    InputPlan,
    InteractiveDriver,
    RunResult,
    feed_input,
    observe_drain,
)
from genharness.errors import HarnessError, ProcessTimeoutError
from genharness.scenario import GeneratorSpec


class FakeStdin:
    """Records writes, drains and close calls in order.

    When *gate* is given, each ``drain()`` blocks until the gate is set and
    clears it again afterwards, so a test can release one drain at a time.
    """

    def __init__(self, gate: asyncio.Event | None = None, break_on: int | None = None):
        self.gate = gate
        self.break_on = break_on
        self.events: list[str] = []
        self.written: list[bytes] = []
        self.closed = False

    def write(self, data: bytes) -> None:
        if self.break_on is not None and len(self.written) + 1 == self.break_on:
            raise BrokenPipeError
        self.written.append(data)
        self.events.append(f"write:{data.decode().rstrip()}")

    async def drain(self) -> None:
        if self.gate is not None:
            await self.gate.wait()
            self.gate.clear()
        self.events.append("drain")

    def close(self) -> None:
        self.closed = True
        self.events.append("close")

    async def wait_closed(self) -> None:
        return None


async def _feed(stdin: FakeStdin, plan: InputPlan) -> tuple[int, InputPlan]:
    pending: asyncio.Queue = asyncio.Queue(maxsize=1)
    drained: asyncio.Queue = asyncio.Queue()
    writes, plan = await asyncio.gather(
        feed_input(stdin, pending, drained),
        observe_drain(plan, pending, drained),
    )
    return writes, plan


@pytest.fixture
def echo_generator() -> GeneratorSpec:
    return GeneratorSpec(name="echo", command_name="make:echo")


# ---------------------------------------------------------------------------
# InputPlan
# ---------------------------------------------------------------------------

class TestInputPlan:
    @pytest.mark.unit
    def test_walks_answers_in_order(self):
        plan = InputPlan(["a", "b"])
        assert len(plan) == 2
        assert plan.current == "a"
        plan.advance()
        assert plan.cursor == 1
        assert plan.current == "b"
        plan.advance()
        assert plan.exhausted

    @pytest.mark.unit
    def test_empty_plan_is_exhausted(self):
        assert InputPlan([]).exhausted

    @pytest.mark.unit
    def test_current_and_advance_fail_when_exhausted(self):
        plan = InputPlan([])
        with pytest.raises(IndexError):
            plan.current
        with pytest.raises(IndexError):
            plan.advance()


# ---------------------------------------------------------------------------
# Cooperating tasks
# ---------------------------------------------------------------------------

class TestFeedAndObserve:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_writes_alternate_with_drains(self):
        stdin = FakeStdin()
        writes, plan = await _feed(stdin, InputPlan(["a", "b", "c"]))

        assert writes == 3
        assert plan.exhausted
        assert stdin.events == [
            "write:a", "drain",
            "write:b", "drain",
            "write:c", "drain",
            "close",
        ]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_next_answer_waits_for_drain(self):
        gate = asyncio.Event()
        stdin = FakeStdin(gate=gate)
        task = asyncio.create_task(_feed(stdin, InputPlan(["a", "b"])))

        await asyncio.sleep(0.01)
        assert stdin.written == [b"a\n"]

        gate.set()
        await asyncio.sleep(0.01)
        assert stdin.written == [b"a\n", b"b\n"]
        assert not stdin.closed

        gate.set()
        writes, _ = await asyncio.wait_for(task, timeout=1)
        assert writes == 2
        assert stdin.closed

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_answer_is_a_bare_newline(self):
        stdin = FakeStdin()
        await _feed(stdin, InputPlan([""]))
        assert stdin.written == [b"\n"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_plan_closes_immediately(self):
        stdin = FakeStdin()
        writes, plan = await _feed(stdin, InputPlan([]))
        assert writes == 0
        assert stdin.events == ["close"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_broken_pipe_stops_feeding(self):
        stdin = FakeStdin(break_on=2)
        writes, plan = await asyncio.wait_for(_feed(stdin, InputPlan(["a", "b", "c"])), timeout=1)

        assert writes == 1
        assert plan.cursor == 1
        assert stdin.closed

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_close_signal_stops_writer(self):
        pending: asyncio.Queue = asyncio.Queue(maxsize=1)
        drained: asyncio.Queue = asyncio.Queue()
        stdin = FakeStdin()
        await pending.put(CLOSE)

        assert await feed_input(stdin, pending, drained) == 0
        assert drained.get_nowait() is None


# ---------------------------------------------------------------------------
# Driver
# ---------------------------------------------------------------------------

class TestGeneratorCommand:
    @pytest.mark.unit
    def test_builds_command(self, tmp_harness_config: HarnessConfig, echo_generator: GeneratorSpec):
        cmd = InteractiveDriver(tmp_harness_config).generator_command(echo_generator)
        assert cmd[1:] == [tmp_harness_config.entrypoint, "make:echo"]
        assert Path(cmd[0]).name == Path(sys.executable).name

    @pytest.mark.unit
    def test_missing_runtime(self, tmp_harness_config: HarnessConfig, echo_generator: GeneratorSpec):
        config = tmp_harness_config.model_copy(update={"runtime": "no-such-runtime-genharness"})
        with pytest.raises(HarnessError, match="not found on PATH"):
            InteractiveDriver(config).generator_command(echo_generator)


class TestInteractiveDriverRun:
    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_feeds_every_answer(
        self, tmp_harness_config: HarnessConfig, echo_generator: GeneratorSpec, tmp_path: Path
    ):
        driver = InteractiveDriver(tmp_harness_config)
        result = await driver.run(
            driver.generator_command(echo_generator), cwd=tmp_path, inputs=["one", "two", ""]
        )

        assert isinstance(result, RunResult)
        assert result.success
        assert result.answers_sent == 3
        assert "answer 1: one" in result.stdout
        assert "answer 2: two" in result.stdout
        assert "received 3 answer(s)" in result.stdout

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_no_answers(
        self, tmp_harness_config: HarnessConfig, echo_generator: GeneratorSpec, tmp_path: Path
    ):
        driver = InteractiveDriver(tmp_harness_config)
        result = await driver.run(driver.generator_command(echo_generator), cwd=tmp_path, inputs=[])

        assert result.success
        assert result.answers_sent == 0
        assert "received 0 answer(s)" in result.stdout

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_sets_interactive_env_var(
        self,
        tmp_harness_config: HarnessConfig,
        echo_generator: GeneratorSpec,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ):
        monkeypatch.delenv("SHELL_INTERACTIVE", raising=False)
        config = tmp_harness_config.model_copy(update={"interactive_env_var": "OTHER_FLAG"})
        driver = InteractiveDriver(config)

        result = await driver.run(driver.generator_command(echo_generator), cwd=tmp_path, inputs=[])

        assert result.exit_code == 3
        assert "Not running in interactive mode" in result.stderr

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_runs_in_cwd(self, tmp_harness_config: HarnessConfig, tmp_path: Path):
        driver = InteractiveDriver(tmp_harness_config)
        generator = GeneratorSpec(name="controller", command_name="make:controller")

        result = await driver.run(driver.generator_command(generator), cwd=tmp_path, inputs=["FooController"])

        assert result.success
        assert (tmp_path / "src" / "Controller" / "FooController.php").exists()
        assert "created: src/Controller/FooController.php" in result.stdout

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_non_zero_exit_is_returned(self, tmp_harness_config: HarnessConfig, tmp_path: Path):
        driver = InteractiveDriver(tmp_harness_config)
        generator = GeneratorSpec(name="fail", command_name="make:fail")

        result = await driver.run(driver.generator_command(generator), cwd=tmp_path, inputs=["a", "b"])

        assert result.exit_code == 2
        assert not result.success
        assert "Something went wrong" in result.stderr

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_child_exiting_before_all_answers(self, tmp_harness_config: HarnessConfig, tmp_path: Path):
        driver = InteractiveDriver(tmp_harness_config)
        generator = GeneratorSpec(name="controller", command_name="make:controller")

        result = await driver.run(
            driver.generator_command(generator), cwd=tmp_path, inputs=["FooController", "extra", "more"]
        )

        assert result.success
        assert 1 <= result.answers_sent <= 3

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_timeout_kills_process(self, tmp_harness_config: HarnessConfig, tmp_path: Path):
        driver = InteractiveDriver(tmp_harness_config)
        generator = GeneratorSpec(name="entity", command_name="make:entity")

        with pytest.raises(ProcessTimeoutError) as exc_info:
            await driver.run(driver.generator_command(generator), cwd=tmp_path, inputs=["Product"], timeout=1.0)

        err = exc_info.value
        assert err.timeout == 1.0
        assert "1 of 1 answer(s)" in str(err)
        assert "Class name of the entity" in err.stdout
        assert not (tmp_path / "src" / "Entity" / "Product.php").exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_executable(self, tmp_harness_config: HarnessConfig, tmp_path: Path):
        driver = InteractiveDriver(tmp_harness_config)
        with pytest.raises(HarnessError, match="Executable not found"):
            await driver.run([str(tmp_path / "no-such-binary")], cwd=tmp_path, inputs=[])


class TestRunResult:
    @pytest.mark.unit
    def test_success_and_summary(self):
        result = RunResult(command="x", exit_code=0, duration_seconds=1.25, answers_sent=2)
        assert result.success
        assert "Answers sent: 2" in result.summary()
        assert not RunResult(command="x", exit_code=1).success
