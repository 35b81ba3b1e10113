# display.py
# All terminal output for taskloop.
#
# This module owns presentation entirely. The agent never formats strings;
# it emits events, and report() turns them into console output. Swap this
# file to change the entire UI.
#
# Colour language:
#   cyan    : run lifecycle
#   magenta : thoughts and capability calls
#   green   : success / finished
#   red     : errors and failed runs

import json
import logging
from typing import Any

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from taskloop.models import AgentConfig, AgentResult, ErrorInfo, Step

console = Console()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _label(tag: str, color: str) -> Text:
    t = Text()
    t.append(f" {tag} ", style=f"bold white on {color}")
    return t


def _mono(value: str, max_len: int = 120) -> str:
    if len(value) > max_len:
        return value[:max_len] + "…"
    return value


def _dump(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, default=str, ensure_ascii=False)


def configure_logging(level: int | str = logging.WARNING) -> None:
    """Route the root logger through rich, sharing this module's console."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


# ---------------------------------------------------------------------------
# Run lifecycle
# ---------------------------------------------------------------------------


def banner(config: AgentConfig) -> None:
    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]{config.name}[/bold cyan]\n"
            f"[dim]{config.description}[/dim]\n\n"
            f"[dim]Max iterations :[/dim] [white]{config.max_iterations}[/white]\n"
            f"[dim]Temperature    :[/dim] [white]{config.temperature}[/white]",
            border_style="cyan",
            padding=(1, 4),
        )
    )


def run_started(goal: str) -> None:
    console.print()
    console.print(Rule("[cyan]NEW RUN[/cyan]", style="cyan"))
    console.print(
        Panel(
            f"[white]{goal}[/white]",
            title=_label("GOAL", "cyan"),
            border_style="cyan",
            padding=(0, 2),
        )
    )


def step_recorded(step: Step) -> None:
    console.print()
    status = "[bold red]✗[/bold red]" if step.error else "[bold green]✓[/bold green]"
    console.print(f"[bold cyan]  STEP {step.iteration}[/bold cyan]  {status}")
    console.print(f"  [magenta]Thought[/magenta]  [dim white]{_mono(step.thought, 200)}[/dim white]")


# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------


def capability_call(name: str, input: Any) -> None:
    console.print(
        f"  [magenta]Action[/magenta]   [bold white]{name}[/bold white]"
        f"  [dim]{_mono(_dump(input))}[/dim]"
    )


def capability_result(name: str, output: Any) -> None:
    console.print(f"  [magenta]Observe[/magenta]  [white]{_mono(_dump(output), 140)}[/white]")


def error(info: ErrorInfo, step_number: int | None = None) -> None:
    where = f" at step {step_number}" if step_number else ""
    console.print(
        Panel(
            f"[bold red]{info.type}{where}[/bold red]\n[white]{info.message}[/white]"
            + (f"\n[dim]caused by {info.cause}[/dim]" if info.cause else ""),
            title=_label("ERROR ✗", "red"),
            border_style="red",
            padding=(0, 2),
        )
    )


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


def run_summary(result: AgentResult) -> None:
    console.print()
    table = Table(
        box=box.SIMPLE_HEAVY,
        border_style="dim",
        show_header=True,
        header_style="bold dim",
        padding=(0, 1),
    )
    table.add_column("Step", justify="center", width=6)
    table.add_column("Capability", width=20)
    table.add_column("OK", justify="center", width=4)
    table.add_column("Observation / Error", style="dim white")

    for step in result.steps:
        ok = "[bold red]✗[/bold red]" if step.error else "[bold green]✓[/bold green]"
        detail = step.error.message if step.error else _dump(step.observation) if step.action else "—"
        table.add_row(
            str(step.iteration),
            step.action.capability if step.action else "(finish)",
            ok,
            _mono(detail, 60),
        )

    console.print(
        Panel(
            table,
            title="[dim]RUN SUMMARY[/dim]",
            subtitle=f"[dim]{result.iterations} iteration(s) in {result.metadata.duration_ms:.1f} ms[/dim]",
            border_style="dim",
            padding=(0, 1),
        )
    )


def final_result(result: AgentResult) -> None:
    console.print()
    if result.success:
        console.print(
            Panel(
                f"[white]{result.output}[/white]",
                title=_label("RESULT", "green"),
                border_style="green",
                padding=(1, 2),
            )
        )
    else:
        reason = result.error.message if result.error else "Run ended without a successful finish."
        console.print(
            Panel(
                f"[bold white]{reason}[/bold white]\n[dim]Output: {result.output or '(none)'}[/dim]",
                title=_label("FAILED", "red"),
                border_style="red",
                padding=(0, 2),
            )
        )
    console.print()


# ---------------------------------------------------------------------------
# Event listener
# ---------------------------------------------------------------------------


def report(event: Any) -> None:
    """Event listener: render one agent event. Pass it in Agent(listeners=[report])."""
    kind = event.type
    if kind == "start":
        banner(event.config)
        run_started(event.input)
    elif kind == "tool_call":
        capability_call(event.capability, event.input)
    elif kind == "tool_result":
        capability_result(event.capability, event.output)
    elif kind == "error":
        error(event.error, event.step_number)
    elif kind == "step":
        step_recorded(event.step)
    elif kind == "finish":
        run_summary(event.result)
        final_result(event.result)
