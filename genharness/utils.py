"""Shared utility functions for genharness.

Provides async command execution, name sanitising, duration formatting and
the Rich-based console helpers every other module reports through.
"""

from __future__ import annotations

import asyncio
import re
from pathlib import Path

from rich.console import Console
from rich.rule import Rule
from rich.table import Table

console = Console()

# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


async def run_command(
    cmd: str | list[str],
    cwd: str | Path | None = None,
    timeout: float = 300.0,
) -> tuple[int, str, str]:
    """Run a command asynchronously and return ``(returncode, stdout, stderr)``.

    A string is run through the shell, a list is executed directly. The child
    inherits ``os.environ``.

    Does not raise on a non-zero exit code; callers decide what a failure
    means. A missing executable is reported as exit code 127 and a timeout
    as exit code -1, with the reason in the stderr string.
    """
    cmd_str = cmd if isinstance(cmd, str) else " ".join(cmd)

    try:
        if isinstance(cmd, list):
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(cwd) if cwd else None,
            )
        else:
            process = await asyncio.create_subprocess_shell(
                cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(cwd) if cwd else None,
            )
    except FileNotFoundError:
        return 127, "", f"Command not found: {cmd_str}"

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            process.communicate(), timeout=timeout
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return -1, "", f"Command timed out after {timeout}s: {cmd_str}"

    return (
        process.returncode if process.returncode is not None else -1,
        (stdout_bytes or b"").decode("utf-8", errors="replace"),
        (stderr_bytes or b"").decode("utf-8", errors="replace"),
    )


# ---------------------------------------------------------------------------
# String helpers
# ---------------------------------------------------------------------------


def sanitize_name(name: str) -> str:
    """Convert an arbitrary name to a safe directory name.

    Examples::

        sanitize_name("MakeController") -> "makecontroller"
        sanitize_name("  fixtures/Make Entity ") -> "fixtures-make-entity"
    """
    result = re.sub(r"[^a-zA-Z0-9_-]", "-", name.strip().lower())
    result = re.sub(r"-+", "-", result)
    return result.strip("-")


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string.

    Examples::

        format_duration(3.7)    -> "3.7s"
        format_duration(65.2)   -> "1m 5s"
    """
    if seconds < 0:
        return "0.0s"

    minutes = int(seconds // 60)
    secs = seconds % 60
    if minutes:
        return f"{minutes}m {int(secs)}s"
    return f"{secs:.1f}s"


def tail(text: str, lines: int = 40) -> str:
    """Return the last *lines* lines of *text*."""
    return "\n".join(text.rstrip().splitlines()[-lines:])


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_scenario_header(name: str) -> None:
    """Print a full-width rule announcing a scenario."""
    console.print()
    console.print(Rule(f"[bold bright_cyan] Scenario: {name} [/bold bright_cyan]", style="bright_cyan"))


def print_summary_table(rows: list[tuple[str, str, str]], title: str = "Summary") -> None:
    """Print a three-column scenario / status / detail table."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Scenario", no_wrap=True)
    table.add_column("Status")
    table.add_column("Detail", style="dim")

    for name, status, detail in rows:
        table.add_row(name, status, detail)

    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")
