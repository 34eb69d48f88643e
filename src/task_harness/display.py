# display.py
# All terminal output for the task harness.
#
# This module owns presentation entirely. harness.py and approval.py never
# format strings. They call named functions here. Swap this file to change
# the entire UI.
#
# Colour language:
#   cyan    : scaffolding / loop events
#   blue    : assistant calls and replies
#   yellow  : approval checkpoints
#   green   : success / confirmed
#   red     : failures, denials, halts
#   magenta : decision internals (Action / Input / Reasoning)

import json

from rich import box
from rich.panel import Panel
from rich.console import Console
from rich.markup import escape
from rich.rule import Rule
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from task_harness.models import TaskResult
from task_harness.tools import ToolDescriptor, ToolRegistry

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
        return escape(value[:max_len]) + "…"
    return escape(value)


def _json(value: dict) -> Syntax:
    return Syntax(json.dumps(value, indent=2, default=str), "json", theme="ansi_dark")


# ---------------------------------------------------------------------------
# Run lifecycle
# ---------------------------------------------------------------------------


def banner(task: str, conversation_id: str, safe_mode: bool, max_iterations: int) -> None:
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]Agentic Task[/bold cyan]\n\n"
            f"[dim]Task          :[/dim] [white]{escape(task)}[/white]\n"
            f"[dim]Conversation  :[/dim] [white]{conversation_id}[/white]\n"
            f"[dim]Safe mode     :[/dim] [white]{safe_mode}[/white]\n"
            f"[dim]Max iterations:[/dim] [white]{max_iterations}[/white]",
            border_style="cyan",
            padding=(1, 4),
        )
    )


def creating_conversation() -> None:
    console.print(_label("HARNESS", "cyan"), "[cyan] Creating conversation…[/cyan]")


def iteration_start(iteration: int, max_iterations: int) -> None:
    console.print()
    console.print(Rule(f"[cyan]Iteration {iteration} / {max_iterations}[/cyan]", style="cyan"))


def consulting_assistant() -> None:
    console.print(_label("HARNESS", "cyan"), "[cyan] → Consulting assistant…[/cyan]")


def assistant_reply(content: str) -> None:
    console.print(f"  [blue]❯[/blue] [dim white]{_mono(content, 600)}[/dim white]")


def decision(action: str, reasoning: str) -> None:
    console.print(f"  [magenta]Action[/magenta]    [bold white]{_mono(action, 60)}[/bold white]")
    if reasoning:
        console.print(f"  [magenta]Reasoning[/magenta] [dim white]{_mono(reasoning, 200)}[/dim white]")


def no_decision() -> None:
    console.print("  [yellow]No tool decision found, asking for the structured format.[/yellow]")


def executing(action: str) -> None:
    console.print(f"  [cyan]↳ Executing[/cyan] [bold white]{_mono(action, 60)}[/bold white]…")


def tool_succeeded(result: str) -> None:
    console.print(f"  [bold green]✓ Tool executed successfully[/bold green]  [dim]{_mono(result, 140)}[/dim]")


def tool_failed(error: str) -> None:
    console.print(f"  [bold red]✗ Tool failed:[/bold red] [white]{escape(error)}[/white]")


def denied(action: str) -> None:
    console.print(f"  [bold red]✗ Action denied:[/bold red] [white]{_mono(action, 60)}[/white]")


def max_iterations_reached() -> None:
    console.print()
    console.print(_label("HARNESS", "yellow"), "[yellow] Max iterations reached.[/yellow]")


def completed(message: str) -> None:
    console.print()
    console.print(
        Panel(
            f"[white]{escape(message)}[/white]",
            title=_label("TASK COMPLETE ✓", "green"),
            border_style="green",
            padding=(1, 2),
        )
    )


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


# ---------------------------------------------------------------------------
# Approval gate
# ---------------------------------------------------------------------------


def approval_request(action: str, tool_input: dict, reasoning: str) -> None:
    console.print()
    console.print(
        Panel(
            _json(tool_input),
            title=_label(f"APPROVAL REQUIRED: {action}", "yellow"),
            subtitle=f"[dim]{_mono(reasoning, 100)}[/dim]",
            border_style="yellow",
            padding=(0, 2),
        )
    )


def tool_details(descriptor: ToolDescriptor | None, action: str, tool_input: dict) -> None:
    console.print()
    if descriptor is None:
        console.print(f"[yellow]Tool not found: {_mono(action, 60)}[/yellow]")
        return

    table = Table(box=box.SIMPLE, show_header=True, header_style="bold yellow", padding=(0, 1))
    table.add_column("Parameter", style="bold white")
    table.add_column("Description", style="white")
    table.add_column("Current value", style="dim white")
    for name, description in descriptor.parameters.items():
        current = tool_input.get(name)
        table.add_row(name, description, "" if current is None else _mono(str(current), 40))

    console.print(
        Panel(
            table,
            title=_label(f"TOOL: {descriptor.name}", "yellow"),
            subtitle=f"[dim]{descriptor.description} · risky={descriptor.risky}[/dim]",
            border_style="yellow",
            padding=(0, 1),
        )
    )


def edit_prompt(tool_input: dict) -> None:
    console.print("[yellow]Enter new JSON or press Enter to keep current values.[/yellow]")
    console.print(_json(tool_input))


def edit_invalid(error: str) -> None:
    console.print(f"[red]Invalid JSON: {escape(error)}[/red]")


def invalid_answer() -> None:
    console.print("[yellow]Please answer y, n, e or v.[/yellow]")


def approved(edited: bool) -> None:
    if edited:
        console.print("[bold green]✓ Parameters updated, action approved[/bold green]")
    else:
        console.print("[bold green]✓ Action approved[/bold green]")


# ---------------------------------------------------------------------------
# Result & registry printers
# ---------------------------------------------------------------------------


def print_result(result: TaskResult) -> None:
    console.print()
    console.print(Rule("[cyan]Agentic Task Result[/cyan]", style="cyan"))
    console.print(f"[dim]Task       :[/dim] [white]{escape(result.task)}[/white]")
    console.print(f"[dim]Status     :[/dim] [white]{result.status}[/white]")
    console.print(f"[dim]Iterations :[/dim] [white]{result.iterations_used}[/white]")
    console.print(f"[dim]Actions    :[/dim] [white]{len(result.action_log)}[/white]")

    if result.succeeded:
        console.print(Panel(f"[white]{escape(result.final_message)}[/white]", border_style="green"))
    else:
        console.print(Panel(f"[white]{escape(result.final_message)}[/white]", border_style="yellow"))

    if result.action_log:
        table = Table(
            box=box.SIMPLE_HEAVY,
            border_style="dim",
            show_header=True,
            header_style="bold dim",
            padding=(0, 1),
        )
        table.add_column("#", justify="center", width=4)
        table.add_column("Iteration", justify="center", width=10)
        table.add_column("Action", width=14)
        table.add_column("OK", justify="center", width=4)
        table.add_column("Result", style="dim white")

        for index, record in enumerate(result.action_log, start=1):
            ok = "[bold green]✓[/bold green]" if record.success else "[bold red]✗[/bold red]"
            table.add_row(
                str(index),
                str(record.iteration),
                record.action,
                ok,
                _mono(str(record.result), 60),
            )
        console.print(table)

    console.print(Rule(style="cyan"))


def print_tools(registry: ToolRegistry) -> None:
    table = Table(
        box=box.SIMPLE_HEAVY,
        border_style="cyan",
        show_header=True,
        header_style="bold cyan",
        padding=(0, 1),
    )
    table.add_column("Tool", style="bold white", width=14)
    table.add_column("Description", style="white")
    table.add_column("Approval", justify="center", width=10)

    for name in registry.names():
        descriptor = registry.describe(name)
        approval = "[yellow]required[/yellow]" if descriptor.risky else "[green]no[/green]"
        table.add_row(name, descriptor.description, approval)

    console.print(
        Panel(
            table,
            title=_label(f"AVAILABLE TOOLS ({len(registry)})", "cyan"),
            subtitle="[dim]Risky tools require approval in safe mode[/dim]",
            border_style="cyan",
            padding=(0, 1),
        )
    )
