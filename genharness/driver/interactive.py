"""Interactive process driver.

Runs one generator process to completion against a scripted list of answers.
Four tasks cooperate while the child runs:

- a **writer** that waits on a queue of pending answers, writes each one
  followed by a newline, waits for the stdin buffer to drain and reports the
  drain, or closes stdin when it receives the close signal;
- an **observer** that owns the :class:`InputPlan` cursor and, on each drain
  notification, queues the next answer or the close signal;
- two **readers** that keep stdout and stderr flowing so the child never
  blocks on a full pipe.

The writer and observer share nothing but the two queues. The stdin
transport's high-water mark is zero, so ``drain()`` only returns once every
byte written so far has been handed to the child's pipe; the next answer is
never sent before that.
"""

from __future__ import annotations

import asyncio
import os
import shutil
import time
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from genharness.errors import HarnessError, ProcessTimeoutError
from genharness.utils import console, tail

if TYPE_CHECKING:
    from genharness.config import HarnessConfig
    from genharness.scenario import GeneratorSpec

# Queued after the last answer; tells the writer to close stdin.
CLOSE = object()

_READ_CHUNK = 64 * 1024
_SETTLE_TIMEOUT = 2.0


@dataclass(frozen=True)
class RunResult:
    """Outcome of one generator process. Immutable once the process ends."""

    command: str
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    duration_seconds: float = 0.0
    answers_sent: int = 0

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    def summary(self) -> str:
        """Return a human-readable summary of the result."""
        status = "[green]SUCCESS[/green]" if self.success else f"[red]FAILED (exit {self.exit_code})[/red]"
        return "\n".join(
            [
                f"Status: {status}",
                f"Duration: {self.duration_seconds:.1f}s",
                f"Answers sent: {self.answers_sent}",
            ]
        )


class InputPlan:
    """Ordered scripted answers plus a cursor.

    The plan is exhausted exactly when the cursor has moved past the last
    answer.
    """

    def __init__(self, answers: Sequence[str]):
        self._answers = tuple(answers)
        self._cursor = 0

    def __len__(self) -> int:
        return len(self._answers)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def exhausted(self) -> bool:
        return self._cursor >= len(self._answers)

    @property
    def current(self) -> str:
        if self.exhausted:
            raise IndexError("input plan is exhausted")
        return self._answers[self._cursor]

    def advance(self) -> None:
        if self.exhausted:
            raise IndexError("input plan is exhausted")
        self._cursor += 1


# ---------------------------------------------------------------------------
# Cooperating tasks
# ---------------------------------------------------------------------------


async def feed_input(
    stdin: asyncio.StreamWriter,
    pending: asyncio.Queue,
    drained: asyncio.Queue,
) -> int:
    """Writer task. Returns the number of answers written.

    Posts the running write count to *drained* after each drain, and ``None``
    once it stops for any reason.
    """
    writes = 0
    try:
        while True:
            answer = await pending.get()
            if answer is CLOSE:
                break
            stdin.write(answer.encode("utf-8") + b"\n")
            writes += 1
            await stdin.drain()
            await drained.put(writes)
    except (BrokenPipeError, ConnectionResetError):
        # The child exited before reading every answer; its exit status decides the run.
        pass
    finally:
        stdin.close()
        try:
            await stdin.wait_closed()
        except (BrokenPipeError, ConnectionResetError):
            pass
        drained.put_nowait(None)
    return writes


async def observe_drain(
    plan: InputPlan,
    pending: asyncio.Queue,
    drained: asyncio.Queue,
) -> InputPlan:
    """Observer task. Advances *plan* on each drain and queues what comes next."""
    if plan.exhausted:
        await pending.put(CLOSE)
        return plan

    await pending.put(plan.current)
    while True:
        event = await drained.get()
        if event is None:
            return plan
        plan.advance()
        if plan.exhausted:
            await pending.put(CLOSE)
            return plan
        await pending.put(plan.current)


async def _read_stream(stream: asyncio.StreamReader, chunks: list[bytes]) -> None:
    while True:
        chunk = await stream.read(_READ_CHUNK)
        if not chunk:
            return
        chunks.append(chunk)


async def _settle(tasks: list[asyncio.Task], timeout: float = _SETTLE_TIMEOUT) -> None:
    """Give *tasks* a moment to finish, then cancel whatever is left."""
    tasks = [t for t in tasks if not t.done()]
    if not tasks:
        return
    _, still_running = await asyncio.wait(tasks, timeout=timeout)
    for task in still_running:
        task.cancel()
    await asyncio.gather(*still_running, return_exceptions=True)


def _decode(chunks: list[bytes]) -> str:
    return b"".join(chunks).decode("utf-8", errors="replace")


# ---------------------------------------------------------------------------
# Driver
# ---------------------------------------------------------------------------


class InteractiveDriver:
    """Launches a generator and feeds it scripted answers one at a time."""

    def __init__(self, config: HarnessConfig):
        self.config = config

    def generator_command(self, generator: GeneratorSpec) -> list[str]:
        """Return ``[<runtime>, <entrypoint>, <command_name>]`` for *generator*.

        Raises:
            HarnessError: If the runtime is not on ``PATH``.
        """
        runtime = shutil.which(self.config.runtime)
        if runtime is None:
            raise HarnessError(
                f"Runtime '{self.config.runtime}' not found on PATH; "
                "cannot launch the generator."
            )
        return [runtime, self.config.entrypoint, generator.command_name]

    async def run(
        self,
        command: Sequence[str],
        cwd: str | Path,
        inputs: Sequence[str],
        timeout: float | None = None,
    ) -> RunResult:
        """Run *command* in *cwd*, feeding *inputs*, and capture its output.

        Returns a :class:`RunResult` whatever the exit code; the output is not
        interpreted here.

        Raises:
            ProcessTimeoutError: If the process outlives *timeout* seconds
                (default ``config.timeout``); it is killed first.
            HarnessError: If the executable cannot be started.
        """
        timeout = self.config.timeout if timeout is None else timeout
        cmd_str = " ".join(command)

        env = os.environ.copy()
        env[self.config.interactive_env_var] = "1"

        console.print(
            f"[cyan]Running[/cyan] [bold]{cmd_str}[/bold] "
            f"[dim]({len(inputs)} answer(s), timeout {timeout}s)[/dim]"
        )

        start_time = time.monotonic()
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(cwd),
                env=env,
            )
        except FileNotFoundError as exc:
            raise HarnessError(f"Executable not found: '{command[0]}'", command=cmd_str) from exc
        except PermissionError as exc:
            raise HarnessError(f"Permission denied executing: '{command[0]}'", command=cmd_str) from exc

        assert process.stdin is not None and process.stdout is not None and process.stderr is not None
        process.stdin.transport.set_write_buffer_limits(high=0)

        plan = InputPlan(inputs)
        pending: asyncio.Queue = asyncio.Queue(maxsize=1)
        drained: asyncio.Queue = asyncio.Queue()
        stdout_chunks: list[bytes] = []
        stderr_chunks: list[bytes] = []

        writer = asyncio.create_task(feed_input(process.stdin, pending, drained))
        observer = asyncio.create_task(observe_drain(plan, pending, drained))
        readers = [
            asyncio.create_task(_read_stream(process.stdout, stdout_chunks)),
            asyncio.create_task(_read_stream(process.stderr, stderr_chunks)),
        ]

        async def _wait_for_exit() -> int:
            await asyncio.gather(*readers)
            return await process.wait()

        try:
            exit_code = await asyncio.wait_for(_wait_for_exit(), timeout=timeout)
        except asyncio.TimeoutError:
            elapsed = time.monotonic() - start_time
            console.print(f"[red]Generator timed out after {elapsed:.1f}s. Killing...[/red]")
            if process.returncode is None:
                process.kill()
            await process.wait()
            await _settle([writer, observer, *readers])
            stdout, stderr = _decode(stdout_chunks), _decode(stderr_chunks)
            raise ProcessTimeoutError(
                f"Generator did not finish within {timeout}s after {plan.cursor} of "
                f"{len(plan)} answer(s): {cmd_str}\n{tail(stdout)}",
                timeout=timeout,
                command=cmd_str,
                stdout=stdout,
                stderr=stderr,
            )
        finally:
            if process.returncode is None:
                process.kill()
                await process.wait()

        await _settle([writer, observer])
        answers_sent = writer.result() if writer.done() and not writer.cancelled() else plan.cursor

        result = RunResult(
            command=cmd_str,
            exit_code=exit_code,
            stdout=_decode(stdout_chunks),
            stderr=_decode(stderr_chunks),
            duration_seconds=time.monotonic() - start_time,
            answers_sent=answers_sent,
        )
        style = "green" if result.success else "red"
        console.print(
            f"  [{style}]exit {result.exit_code}[/{style}] "
            f"[dim]after {result.duration_seconds:.1f}s, {answers_sent} answer(s) sent[/dim]"
        )
        return result
