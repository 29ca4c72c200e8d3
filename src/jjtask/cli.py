"""CLI entry point for jjtask."""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from rich.console import Console
from rich.table import Table
from rich.text import Text

from . import __version__
from .config import JJTaskConfig, RepoConfig, load_config
from .context import TaskContext
from .engine import (
    batch_describe,
    checkpoint,
    create_parallel,
    create_task,
    drop_tasks,
    find_stale,
    find_tasks,
    finish_tasks,
    set_flag,
    show_description,
    squash_merge,
    start_tasks,
)
from .errors import JJTaskError
from .flags import TASK_FLAGS
from .prime import render_prime
from .revsets import CATEGORIES
from .store import JJStore
from .ui import (
    OUTPUT_CHOICES,
    make_console,
    print_error,
    print_json,
    render_advisories,
    render_help,
    render_result,
    render_table,
    resolve_output_mode,
    revision_rows,
)


@dataclass
class Invocation:
    config: JJTaskConfig
    repo: Path | None
    out: Console
    err: Console
    json_mode: bool = False

    def context(self) -> TaskContext:
        return TaskContext.for_repo(self.repo, self.config)

    def store_for(self, repo: RepoConfig) -> JJStore:
        path = repo.resolve(self.config.root) if self.repo is None else self.repo
        return JJStore(path, binary=self.config.binary, timeout=self.config.timeout)


def _parser(prog: str) -> argparse.ArgumentParser:
    return argparse.ArgumentParser(prog=prog, add_help=False, allow_abbrev=False)


def _wants_help(argv: list[str]) -> bool:
    return bool(argv) and argv[0] in ("-h", "--help")


def _fail(inv: Invocation, msg: str) -> int:
    if inv.json_mode:
        print_json({"error": msg})
        return 1
    print_error(inv.err, msg)
    return 1


# ---------------------------------------------------------------------------
# Task creation
# ---------------------------------------------------------------------------


def cmd_create(argv: list[str], inv: Invocation) -> int:
    if _wants_help(argv):
        return render_help(
            inv.out,
            title="jjtask create",
            usage="jjtask create <title> [description] [--parent REV] [--chain] [--draft]",
            about="Create a new task revision as a direct child of @ (or --parent REV).",
            options=[
                ("--parent, -p", "Create as child of REV (default: @)"),
                ("--chain", "Auto-chain from the deepest pending descendant"),
                ("--draft", "Create with [task:draft] instead of [task:todo]"),
            ],
            examples=[
                'jjtask create "Fix bug"',
                'jjtask create --parent xyz "Fix bug"',
                'jjtask create --chain "Next step"',
                'jjtask create --draft "Future work"',
            ],
        )

    p = _parser("jjtask create")
    p.add_argument("title")
    p.add_argument("description", nargs="?", default="")
    p.add_argument("--parent", "-p", default=None)
    p.add_argument("--chain", action="store_true")
    p.add_argument("--draft", action="store_true")
    args = p.parse_args(argv)

    result = create_task(
        inv.context(),
        args.title,
        body=args.description,
        parent=args.parent,
        draft=args.draft,
        chain=args.chain,
    )
    if inv.json_mode:
        return render_result(inv.out, inv.err, result, json_mode=True)
    render_advisories(inv.err, result.advisories)
    inv.out.print(result.message, markup=False)
    return 0


def cmd_parallel(argv: list[str], inv: Invocation) -> int:
    if _wants_help(argv):
        return render_help(
            inv.out,
            title="jjtask parallel",
            usage="jjtask parallel <title1> <title2> [title3...] [--parent REV] [--draft]",
            about="Create several sibling task branches under the same parent.",
            options=[
                ("--parent, -p", "Parent revision for all tasks (default: @)"),
                ("--draft", "Create with [task:draft]"),
            ],
            examples=[
                'jjtask parallel "Widget A" "Widget B" "Widget C"',
                'jjtask parallel --draft --parent mxyz "Future A" "Future B"',
            ],
        )

    p = _parser("jjtask parallel")
    p.add_argument("titles", nargs="*")
    p.add_argument("--parent", "-p", default="@")
    p.add_argument("--draft", action="store_true")
    args = p.parse_args(argv)

    result = create_parallel(inv.context(), args.titles, parent=args.parent, draft=args.draft)
    if inv.json_mode:
        return render_result(inv.out, inv.err, result, json_mode=True)
    for outcome in result.failed:
        print_error(inv.err, outcome.error or "create failed")
    inv.out.print(result.message, markup=False)
    return 0 if result.ok else 1


# ---------------------------------------------------------------------------
# Lifecycle: wip / done / drop / squash / flag
# ---------------------------------------------------------------------------


def cmd_wip(argv: list[str], inv: Invocation) -> int:
    if _wants_help(argv):
        return render_help(
            inv.out,
            title="jjtask wip",
            usage="jjtask wip [tasks...]",
            about="Mark tasks wip and add them as parents of @ (a merge of concurrent work).",
            examples=["jjtask wip xyz", "jjtask wip a b", "jjtask wip   # mark @ itself"],
        )
    p = _parser("jjtask wip")
    p.add_argument("revs", nargs="*")
    args = p.parse_args(argv)
    return render_result(inv.out, inv.err, start_tasks(inv.context(), args.revs), json_mode=inv.json_mode)


def cmd_done(argv: list[str], inv: Invocation) -> int:
    if _wants_help(argv):
        return render_help(
            inv.out,
            title="jjtask done",
            usage="jjtask done [tasks...]",
            about=(
                "Mark tasks done. When a task is a merge parent of @, the merge is "
                "linearized: work, then the done task, then the other tasks, then @."
            ),
            examples=["jjtask done xyz", "jjtask done", "jjtask done a b c"],
        )
    p = _parser("jjtask done")
    p.add_argument("revs", nargs="*")
    args = p.parse_args(argv)
    return render_result(inv.out, inv.err, finish_tasks(inv.context(), args.revs), json_mode=inv.json_mode)


def cmd_drop(argv: list[str], inv: Invocation) -> int:
    if _wants_help(argv):
        return render_help(
            inv.out,
            title="jjtask drop",
            usage="jjtask drop <tasks...> [--abandon]",
            about=(
                "Remove tasks from the @ merge without marking them done. By default "
                "they are flagged standby so they can be re-added with `wip`."
            ),
            options=[("--abandon", "Abandon the tasks entirely")],
            examples=["jjtask drop xyz", "jjtask drop a b c", "jjtask drop --abandon xyz"],
        )
    p = _parser("jjtask drop")
    p.add_argument("revs", nargs="*")
    p.add_argument("--abandon", action="store_true")
    args = p.parse_args(argv)
    result = drop_tasks(inv.context(), args.revs, abandon=args.abandon)
    return render_result(inv.out, inv.err, result, json_mode=inv.json_mode)


def cmd_squash(argv: list[str], inv: Invocation) -> int:
    if _wants_help(argv):
        return render_help(
            inv.out,
            title="jjtask squash",
            usage="jjtask squash [--keep-tasks]",
            about="Flatten the current @ merge into a single linear commit, ready for pushing.",
            options=[("--keep-tasks", "Keep task revisions after squash")],
            examples=["jjtask squash", "jjtask squash --keep-tasks"],
        )
    p = _parser("jjtask squash")
    p.add_argument("--keep-tasks", action="store_true")
    args = p.parse_args(argv)
    result = squash_merge(inv.context(), keep_tasks=args.keep_tasks)
    return render_result(inv.out, inv.err, result, json_mode=inv.json_mode)


def cmd_flag(argv: list[str], inv: Invocation) -> int:
    if _wants_help(argv):
        return render_help(
            inv.out,
            title="jjtask flag",
            usage="jjtask flag <status> [-r REV]... [revs...]",
            about="Change the task flag of revisions (default @) without touching the graph.",
            options=[("--rev, -r", "Revision to flag; repeatable")],
            examples=["jjtask flag review", "jjtask flag blocked -r xyz"],
        )
    p = _parser("jjtask flag")
    p.add_argument("status", choices=TASK_FLAGS)
    p.add_argument("revs", nargs="*")
    p.add_argument("--rev", "-r", action="append", default=[])
    args = p.parse_args(argv)
    result = set_flag(inv.context(), args.status, [*args.rev, *args.revs])
    return render_result(inv.out, inv.err, result, json_mode=inv.json_mode)


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------


def _print_revisions(inv: Invocation, revisions, *, title: str, empty: str) -> int:
    if inv.json_mode:
        print_json(
            [
                {
                    "change_id": rev.change_id,
                    "flag": rev.task.flag.value if rev.task else None,
                    "title": rev.task.title if rev.task else rev.first_line,
                    "parents": list(rev.parents),
                }
                for rev in revisions
            ]
        )
        return 0
    if not revisions:
        inv.out.print(empty, markup=False)
        return 0
    render_table(
        inv.out,
        title=title,
        headers=("ID", "FLAG", "TITLE"),
        rows=revision_rows(revisions),
        no_wrap_columns=(0, 1),
    )
    return 0


def cmd_find(argv: list[str], inv: Invocation) -> int:
    if _wants_help(argv):
        return render_help(
            inv.out,
            title="jjtask find",
            usage="jjtask find [STATUS] [-s STATUS] [-r REVSET]",
            about="List tasks by status: pending (default), done, all, or a single flag.",
            options=[
                ("--status, -s", " | ".join(CATEGORIES)),
                ("--revset, -r", "Restrict to revisions in REVSET"),
            ],
            examples=["jjtask find", "jjtask find wip", "jjtask find -s all -r 'trunk()::'"],
        )
    p = _parser("jjtask find")
    p.add_argument("category", nargs="?", default=None, choices=CATEGORIES)
    p.add_argument("--status", "-s", default=None, choices=CATEGORIES)
    p.add_argument("--revset", "-r", default=None)
    args = p.parse_args(argv)
    status = args.status or args.category or "pending"
    revisions = find_tasks(inv.context(), status, revset=args.revset)
    return _print_revisions(inv, revisions, title=f"Tasks ({status})", empty="No matching tasks")


def cmd_stale(argv: list[str], inv: Invocation) -> int:
    if _wants_help(argv):
        return render_help(
            inv.out,
            title="jjtask stale",
            usage="jjtask stale",
            about=(
                "Find done tasks that are not ancestors of @: superseded, orphaned "
                "or exploratory branches."
            ),
        )
    revisions = find_stale(inv.context())
    code = _print_revisions(
        inv,
        revisions,
        title="Stale done tasks (not in @'s ancestry)",
        empty="No stale done tasks found",
    )
    if revisions and not inv.json_mode:
        inv.out.print(
            Text(
                "These may be superseded, orphaned, or exploratory. Use `jj abandon REV` "
                "to clean up, or `jj rebase -s REV -o @` to integrate.",
                style="dim",
            )
        )
    return code


def cmd_show_desc(argv: list[str], inv: Invocation) -> int:
    if _wants_help(argv):
        return render_help(
            inv.out,
            title="jjtask show-desc",
            usage="jjtask show-desc [REV] [-r REV] [--format text|json]",
            about="Print the description of a revision (default @).",
            examples=["jjtask show-desc", "jjtask show-desc mxyz", "jjtask show-desc -r mxyz --format json"],
        )
    p = _parser("jjtask show-desc")
    p.add_argument("target", nargs="?", default=None)
    p.add_argument("--rev", "-r", default="@")
    p.add_argument("--format", choices=("text", "json"), default="text")
    args = p.parse_args(argv)
    payload = show_description(inv.context(), args.target or args.rev)
    if inv.json_mode or args.format == "json":
        print_json(payload)
        return 0
    sys.stdout.write(payload["description"])
    return 0


def cmd_batch_desc(argv: list[str], inv: Invocation) -> int:
    if _wants_help(argv):
        return render_help(
            inv.out,
            title="jjtask batch-desc",
            usage="jjtask batch-desc <sed-expr> --revset REVSET",
            about="Apply a sed transformation to the descriptions of all revisions in a revset.",
            options=[("--revset, -r", "Revisions to transform (required)")],
            examples=[
                "jjtask batch-desc 's/old/new/' --revset 'description(regex:\"^\\\\[task:todo\\\\]\")'",
            ],
        )
    p = _parser("jjtask batch-desc")
    p.add_argument("expr")
    p.add_argument("--revset", "-r", default=None)
    args = p.parse_args(argv)
    result = batch_describe(inv.context(), args.expr, args.revset)
    return render_result(inv.out, inv.err, result, json_mode=inv.json_mode)


def cmd_checkpoint(argv: list[str], inv: Invocation) -> int:
    if _wants_help(argv):
        return render_help(
            inv.out,
            title="jjtask checkpoint",
            usage="jjtask checkpoint [--message MSG]",
            about="Record the current jj operation id so you can restore to this point.",
            options=[("--message, -m", "Checkpoint label")],
            examples=["jjtask checkpoint", 'jjtask checkpoint -m "Before risky rebase"'],
        )
    p = _parser("jjtask checkpoint")
    p.add_argument("--message", "-m", default=None)
    args = p.parse_args(argv)
    result = checkpoint(inv.context(), args.message)
    if inv.json_mode:
        return render_result(inv.out, inv.err, result, json_mode=True)
    inv.out.print(result.message, markup=False)
    inv.out.print(f"  Restore with: {result.data['restore']}", markup=False)
    return 0


def cmd_prime(argv: list[str], inv: Invocation) -> int:
    if _wants_help(argv):
        return render_help(
            inv.out,
            title="jjtask prime",
            usage="jjtask prime",
            about="Print session context: quick reference (or [prime] content), current tasks and changes.",
        )
    return render_prime(inv.out, inv.config, inv.store_for)


# ---------------------------------------------------------------------------
# Top-level help and dispatch
# ---------------------------------------------------------------------------


COMMANDS: dict[str, tuple[Callable[[list[str], Invocation], int], str]] = {
    "create": (cmd_create, "Create a new task revision"),
    "parallel": (cmd_parallel, "Create sibling tasks under a parent"),
    "wip": (cmd_wip, "Mark tasks wip and merge them into @"),
    "done": (cmd_done, "Mark tasks done and linearize into ancestry"),
    "drop": (cmd_drop, "Remove tasks from the @ merge"),
    "squash": (cmd_squash, "Flatten the @ merge into a linear commit"),
    "flag": (cmd_flag, "Change a task's flag"),
    "find": (cmd_find, "List tasks by status"),
    "stale": (cmd_stale, "Find done tasks not in @'s ancestry"),
    "show-desc": (cmd_show_desc, "Print a revision description"),
    "batch-desc": (cmd_batch_desc, "Transform many descriptions with sed"),
    "checkpoint": (cmd_checkpoint, "Record the operation id for recovery"),
    "prime": (cmd_prime, "Print session context"),
}


def _print_help(console: Console) -> None:
    help_text = Text()
    help_text.append("jjtask", style="bold")
    help_text.append(f" {__version__}", style="dim")
    help_text.append(" - task tracking on top of a jj revision graph")
    console.print(help_text)
    console.print()

    cmds = Table(show_header=False, expand=False, show_edge=False, pad_edge=False, box=None)
    cmds.add_column("Command", style="bold cyan")
    cmds.add_column("Description")
    for name, (_, summary) in COMMANDS.items():
        cmds.add_row(f"jjtask {name}", summary)
    console.print(cmds)
    console.print()

    opts = Table(show_header=False, expand=False, show_edge=False, pad_edge=False, box=None)
    opts.add_column("Option", style="bold")
    opts.add_column("Description", style="dim")
    opts.add_row("-R, --repository PATH", "Repository to operate on")
    opts.add_row("--json", "JSON output")
    opts.add_row("--output auto|plain|rich", "Output mode (default: auto)")
    opts.add_row("--version", "Show version")
    console.print(opts)
    console.print(Text("Run `jjtask <command> --help` for command-specific details.", style="dim"))


def _global_parser() -> argparse.ArgumentParser:
    p = _parser("jjtask")
    p.add_argument("--repository", "-R", default=None)
    p.add_argument("--json", action="store_true")
    p.add_argument("--output", choices=OUTPUT_CHOICES, default=None)
    return p


def main(argv: list[str] | None = None) -> None:
    raw = argv if argv is not None else sys.argv[1:]

    if "--version" in raw:
        Console().print(Text(f"jjtask {__version__}", style="bold"))
        sys.exit(0)

    globals_, rest = _global_parser().parse_known_args(raw)
    mode = resolve_output_mode(globals_.output)
    out = make_console(mode)
    err = make_console(mode, stderr=True)

    if not rest or rest == ["--help"] or rest == ["-h"]:
        _print_help(out)
        sys.exit(0)

    command, args = rest[0], rest[1:]
    entry = COMMANDS.get(command)
    if entry is None:
        print_error(err, f"unknown command: {command}")
        err.print(Text("Run `jjtask --help` to list commands.", style="dim"))
        sys.exit(1)

    repo = Path(globals_.repository).expanduser() if globals_.repository else None
    try:
        config = load_config(repo)
    except JJTaskError as exc:
        print_error(err, str(exc))
        sys.exit(1)

    inv = Invocation(config=config, repo=repo, out=out, err=err, json_mode=globals_.json)
    handler, _ = entry
    try:
        code = handler(args, inv)
    except JJTaskError as exc:
        code = _fail(inv, str(exc))
    sys.exit(code)


if __name__ == "__main__":
    main()
