# display.py
# All terminal output for shell-pilot.
#
# This module owns presentation entirely. Other modules never format strings
# for the terminal — they call named functions here. Swap this file to change
# the entire UI.
#
# Colour language:
#   cyan    — routing / per-message events
#   yellow  — repair attempts
#   green   — success / confirmed
#   red     — failures, halts
#   magenta — artifacts and generated documents

from datetime import datetime

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from shell_pilot.models import ExecutionResult, Plan

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
        value = value[:max_len] + "…"
    return escape(value)


def truncate(value: str, max_len: int) -> str:
    """Cut `value` to `max_len` characters, marking the cut."""
    if len(value) <= max_len:
        return value
    return value[:max_len] + "...(truncated)"


def log(tag: str, message: str) -> None:
    """Timestamped trace line: ``HH:MM:SS.mmm [tag] message``."""
    stamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
    console.print(f"[dim]{stamp}[/dim] [bold]\\[{escape(tag)}][/bold] {escape(message)}", highlight=False)


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------


def banner(model: str, working_dir: str, budget: int, skill_ids: list[str]) -> None:
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]shell-pilot[/bold cyan]\n"
            "[dim]Instruction → plan → execution with advisory self-repair[/dim]\n\n"
            f"[dim]Model        :[/dim] [white]{escape(model)}[/white]\n"
            f"[dim]Working dir  :[/dim] [white]{escape(working_dir)}[/white]\n"
            f"[dim]Repair budget:[/dim] [white]{budget}[/white]\n"
            f"[dim]Skills       :[/dim] [white]{', '.join(skill_ids) or 'none'}[/white]",
            border_style="cyan",
            padding=(1, 4),
        )
    )


# ---------------------------------------------------------------------------
# Per-message routing
# ---------------------------------------------------------------------------


def prompt_received(task_id: int, text: str) -> None:
    console.print()
    console.print(Rule(f"[cyan]MESSAGE #{task_id}[/cyan]", style="cyan"))
    console.print(
        Panel(
            f"[white]{escape(text)}[/white]",
            title=_label("INSTRUCTION", "cyan"),
            border_style="cyan",
            padding=(0, 2),
        )
    )


def classification_failed(task_id: int, error: str) -> None:
    console.print(
        Panel(
            f"[bold red]Advisory service could not classify message #{task_id}.[/bold red]\n\n"
            f"[white]{escape(error)}[/white]",
            title=_label("CLASSIFY ✗", "red"),
            border_style="red",
            padding=(0, 2),
        )
    )


def plan_parsed(plan: Plan) -> None:
    console.print()
    table = Table(
        box=box.SIMPLE_HEAVY,
        border_style="cyan",
        show_header=True,
        header_style="bold cyan",
        padding=(0, 1),
    )
    table.add_column("#", justify="center", width=4)
    table.add_column("Command", style="bold white")
    table.add_column("Description", style="white")

    for index, action in enumerate(plan.actions, start=1):
        table.add_row(str(index), _mono(action.command, 60), escape(action.description))

    console.print(
        Panel(
            table,
            title=_label("EXECUTION PLAN", "cyan"),
            border_style="cyan",
            padding=(0, 1),
        )
    )


# ---------------------------------------------------------------------------
# Execution loop
# ---------------------------------------------------------------------------


def execution_start(total: int) -> None:
    console.print()
    console.print(Rule(f"[cyan]EXECUTION — {total} action(s)[/cyan]", style="cyan"))


def action_start(index: int, total: int, description: str) -> None:
    console.print()
    console.print(
        f"[bold cyan]  ACTION [{index + 1}/{total}][/bold cyan]  [white]{escape(description)}[/white]"
    )


def action_halted(index: int, skipped: int) -> None:
    console.print(
        f"  [bold red]✗ Action {index + 1} failed — {skipped} remaining action(s) not attempted[/bold red]"
    )


def repair_attempt(attempt: int, budget: int, command: str) -> None:
    console.print(
        f"  [yellow]↻ Repair {attempt}/{budget}[/yellow]  [dim]{_mono(command, 100)}[/dim]"
    )


def repair_suggestion(command: str) -> None:
    console.print(f"  [yellow]↳ Suggested[/yellow]  [bold white]{_mono(command, 140)}[/bold white]")


def repair_unparseable(suggestion: str) -> None:
    console.print(
        Panel(
            f"[white]{_mono(suggestion, 400)}[/white]",
            title=_label("NO COMMAND IN SUGGESTION", "yellow"),
            border_style="yellow",
            padding=(0, 2),
        )
    )


def repair_aborted(reason: str) -> None:
    console.print(f"  [red]✗ Repair aborted:[/red] [white]{escape(reason)}[/white]")


def repair_succeeded(attempt: int) -> None:
    console.print(f"  [bold green]✓ Repaired after {attempt} attempt(s)[/bold green]")


def device_index_resolved(index: int | None, command: str) -> None:
    if index is None:
        console.print("  [yellow]↳ No capture screen found in device list — command unchanged[/yellow]")
        return
    console.print(
        f"  [bold green]✓ Capture screen index {index}[/bold green]  [dim]{_mono(command, 100)}[/dim]"
    )


def slides_generated(path: str) -> None:
    console.print(f"  [magenta]✎ Slides written[/magenta]  [white]{escape(path)}[/white]")


def result_line(result: ExecutionResult) -> None:
    mark = "[bold green]✓[/bold green]" if result.success else "[bold red]✗[/bold red]"
    console.print(f"  {mark} [dim]exit={result.exit_code}[/dim]  [white]{_mono(result.command, 100)}[/white]")


def execution_summary(plan: Plan, results: list[ExecutionResult]) -> None:
    console.print()
    table = Table(
        box=box.SIMPLE_HEAVY,
        border_style="dim",
        show_header=True,
        header_style="bold dim",
        padding=(0, 1),
    )
    table.add_column("#", justify="center", width=4)
    table.add_column("Description", width=28)
    table.add_column("OK", justify="center", width=4)
    table.add_column("Output", style="dim white")

    for index, result in enumerate(results):
        description = plan.actions[index].description if index < len(plan.actions) else ""
        ok = "[bold green]✓[/bold green]" if result.success else "[bold red]✗[/bold red]"
        output = result.stdout.strip() or result.stderr.strip()
        table.add_row(str(index + 1), escape(description), ok, _mono(output, 60))

    console.print(
        Panel(
            table,
            title="[dim]EXECUTION SUMMARY[/dim]",
            border_style="dim",
            padding=(0, 1),
        )
    )


# ---------------------------------------------------------------------------
# Delivery
# ---------------------------------------------------------------------------


def artifact_delivered(kind: str, path: str) -> None:
    console.print(f"  [magenta]⇪ {kind}[/magenta]  [white]{escape(path)}[/white]")


def artifact_missing(kind: str, path: str) -> None:
    console.print(f"  [yellow]⚠ {kind} not found, skipped:[/yellow] [dim]{escape(path)}[/dim]")


# ---------------------------------------------------------------------------
# Final result
# ---------------------------------------------------------------------------


def final_result(result: str) -> None:
    console.print()
    console.print(
        Panel(
            f"[white]{escape(result)}[/white]",
            title=_label("RESULT", "green"),
            border_style="green",
            padding=(1, 2),
        )
    )
    console.print()


def halt(reason: str) -> None:
    console.print()
    console.print(
        Panel(
            f"[bold white]{escape(reason)}[/bold white]",
            title=_label("HALT", "red"),
            border_style="red",
            padding=(0, 2),
        )
    )
    console.print()
