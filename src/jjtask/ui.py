from __future__ import annotations

import json
import sys
from collections.abc import Sequence
from typing import IO, Any, Literal

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .results import ORPHAN_TASK, Advisory, OperationResult

OUTPUT_CHOICES = ("auto", "plain", "rich")
OutputMode = Literal["plain", "rich"]


def resolve_output_mode(requested: str | None = None, *, stream: IO[str] | None = None) -> OutputMode:
    """Pick ``rich`` or ``plain`` output; ``auto`` follows whether ``stream`` is a terminal."""
    choice = (requested or "auto").strip().lower() or "auto"
    if choice not in OUTPUT_CHOICES:
        raise ValueError(f"unknown output mode {requested!r} (choose from {', '.join(OUTPUT_CHOICES)})")
    if choice != "auto":
        return "rich" if choice == "rich" else "plain"
    target = sys.stdout if stream is None else stream
    try:
        return "rich" if target.isatty() else "plain"
    except (AttributeError, OSError, ValueError):
        # Closed or detached streams count as plain.
        return "plain"


def make_console(mode: OutputMode, *, stderr: bool = False) -> Console:
    rich_mode = mode == "rich"
    return Console(
        file=sys.stderr if stderr else sys.stdout,
        force_terminal=rich_mode,
        no_color=not rich_mode,
        soft_wrap=not rich_mode,
        highlight=False,
    )


def render_table(
    console: Console,
    *,
    headers: Sequence[str],
    rows: Sequence[Sequence[object]],
    title: str | None = None,
    no_wrap_columns: Sequence[int] = (),
) -> None:
    table = Table(title=title, show_edge=False, pad_edge=False)
    no_wrap = set(no_wrap_columns)
    for idx, header in enumerate(headers):
        table.add_column(str(header), no_wrap=idx in no_wrap)
    for row in rows:
        table.add_row(*(str(value or "") for value in row))
    console.print(table)


def print_json(data: object, *, pretty: bool = True) -> None:
    indent = 2 if pretty else None
    json.dump(data, sys.stdout, indent=indent)
    sys.stdout.write("\n")


def print_error(console: Console, message: str) -> None:
    console.print(Text(f"error: {message}", style="red"), markup=False)


def _render_orphans(console: Console, advisory: Advisory) -> None:
    rev_union = " | ".join(advisory.revisions)
    console.print()
    console.print(Text(f"Warning: {advisory.message}", style="yellow"))
    options = Table(show_header=False, box=None, pad_edge=False)
    options.add_column("Option", style="bold")
    options.add_column("Action")
    options.add_row("1", "Consolidate specs into @ description, then abandon tasks")
    options.add_row("2", "Linearize into ancestry (may conflict)")
    options.add_row("3", "Leave as-is (manual cleanup later)")
    console.print(options)
    console.print(
        Text(f"View specs: jj log -r '{rev_union}' --no-graph -T description", style="dim")
    )
    console.print()


def render_advisories(console: Console, advisories: Sequence[Advisory]) -> None:
    for advisory in advisories:
        if advisory.kind == ORPHAN_TASK:
            _render_orphans(console, advisory)
            continue
        console.print(Text(f"Warning: {advisory.message}", style="yellow"))


def render_result(
    out: Console,
    err: Console,
    result: OperationResult,
    *,
    json_mode: bool = False,
) -> int:
    """Print an engine result; return the process exit code."""
    if json_mode:
        print_json(result.to_dict())
        return 0 if result.ok else 1

    for outcome in result.outcomes:
        if outcome.ok:
            if outcome.detail:
                out.print(outcome.detail, markup=False)
        else:
            print_error(err, outcome.error or f"{outcome.rev} failed")
    render_advisories(err, result.advisories)
    if result.message:
        style = "green" if result.ok else "red"
        out.print(Text(result.message, style=style))
    return 0 if result.ok else 1


def render_help(
    console: Console,
    *,
    title: str,
    usage: str,
    about: str,
    options: Sequence[tuple[str, str]] = (),
    examples: Sequence[str] = (),
) -> int:
    console.print(Panel.fit(about, title=title, border_style="cyan"))
    console.print(Text(f"Usage: {usage}", style="bold"))
    if options:
        table = Table(show_header=False, box=None, pad_edge=False)
        table.add_column("Option", style="bold")
        table.add_column("Description", style="dim")
        for opt, desc in options:
            table.add_row(opt, desc)
        console.print(table)
    if examples:
        console.print(Text("Examples:", style="bold"))
        for example in examples:
            console.print(f"  {example}", markup=False)
    return 0


def revision_rows(revisions: Sequence[Any]) -> list[tuple[str, str, str]]:
    rows: list[tuple[str, str, str]] = []
    for rev in revisions:
        task = rev.task
        flag = task.flag.value if task is not None else ""
        title = task.title if task is not None else rev.first_line
        rows.append((rev.change_id, flag, title))
    return rows
